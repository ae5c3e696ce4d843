"""
UI Package for the Chat Shell

This package provides the terminal user interface of the chat shell using
the Textual framework.
"""

from .app import ShellApp, format_plugin_view, register_extension

__all__ = ["ShellApp", "format_plugin_view", "register_extension"]
