"""
Schemas Package

This package contains the records exchanged with a backend, organized by
category: messages, roster, plugins and preferences.

The base classes (BaseRecord, BaseRequest) hold the shared serialization
and deserialization methods.
"""

from .base import BaseRecord, BaseRequest, Event
from .message import ChatMessage, MessageRow
from .roster import RosterItem, RosterRow, UNAVAILABLE
from .plugin import (
    GUI_METADATA,
    AnyPluginAction,
    Get,
    Install,
    InstalledPlugin,
    PluginAction,
    PluginInfo,
    PluginStatus,
    Uninstall,
    Update,
    plugin_action_from_dict,
)
from .preferences import UiConfig

__all__ = [
    # Base classes
    "BaseRecord",
    "BaseRequest",
    "Event",
    # Message schemas
    "ChatMessage",
    "MessageRow",
    # Roster schemas
    "RosterItem",
    "RosterRow",
    "UNAVAILABLE",
    # Plugin schemas
    "GUI_METADATA",
    "AnyPluginAction",
    "Get",
    "Install",
    "InstalledPlugin",
    "PluginAction",
    "PluginInfo",
    "PluginStatus",
    "Uninstall",
    "Update",
    "plugin_action_from_dict",
    # Preference schemas
    "UiConfig",
]
