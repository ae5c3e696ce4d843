"""
Preference Schema Definitions

The UI preference snapshot held by the backend and read once at startup.
"""

from dataclasses import dataclass
from typing import Optional

from .base import BaseRecord


@dataclass
class UiConfig(BaseRecord):
    """
    Backend-held UI preferences.

    Attributes:
        notifications: Whether desktop notifications are enabled
        theme: Theme choice ("light", "dark" or "system")
        locale: Optional locale override
        theme_name: Name of the selected theme
        custom_theme_path: Optional path to a custom theme file
    """

    notifications: bool = True
    theme: str = "system"
    locale: Optional[str] = None
    theme_name: str = "default"
    custom_theme_path: Optional[str] = None

    _WIRE_NAMES = {
        "theme_name": "themeName",
        "custom_theme_path": "customThemePath",
    }
