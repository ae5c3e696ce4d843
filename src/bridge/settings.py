"""
Settings State

Holds the UI preference snapshot read once from the backend at startup and
notifies watchers when the theme choice changes.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from .events import UnlistenFn, once
from .schemas import UiConfig

logger = logging.getLogger(__name__)


class ThemeChoice(str, Enum):
    """Theme selection. SYSTEM follows the OS color scheme."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


def parse_theme_choice(value: Optional[str]) -> ThemeChoice:
    """
    Parse a stored theme choice.

    Unknown values fall back to SYSTEM.
    """
    try:
        return ThemeChoice(value)
    except ValueError:
        logger.warning("Unknown theme choice %r, using system", value)
        return ThemeChoice.SYSTEM


class SettingsState:
    """
    Client-side preference state.

    Attributes:
        notifications: Whether notifications are enabled
        locale: Optional locale override
        theme_name: Name of the selected theme
        custom_theme_path: Optional custom theme path
        loaded: True once the snapshot has been read from the backend
    """

    def __init__(self, theme: ThemeChoice = ThemeChoice.SYSTEM):
        self._theme = theme
        self.notifications = True
        self.locale: Optional[str] = None
        self.theme_name = "default"
        self.custom_theme_path: Optional[str] = None
        self.loaded = False
        self._watchers: List[Callable[[ThemeChoice], None]] = []

    async def load(self, service) -> None:
        """
        Read the preference snapshot from the backend. Runs once.

        Args:
            service: BridgeService providing get_config
        """
        if self.loaded:
            return
        config: UiConfig = await service.get_config()
        self.notifications = config.notifications
        self.locale = config.locale
        self.theme_name = config.theme_name
        self.custom_theme_path = config.custom_theme_path
        self.loaded = True
        self.theme = parse_theme_choice(config.theme)
        logger.info("Settings loaded (theme=%s)", self._theme.value)

    @property
    def theme(self) -> ThemeChoice:
        """Current theme choice."""
        return self._theme

    @theme.setter
    def theme(self, choice: ThemeChoice) -> None:
        choice = ThemeChoice(choice)
        if choice is self._theme:
            return
        self._theme = choice
        for watcher in list(self._watchers):
            watcher(choice)

    def watch_theme(self, callback: Callable[[ThemeChoice], None]) -> UnlistenFn:
        """
        Register a callback for theme choice changes.

        Returns:
            UnlistenFn removing the callback
        """
        self._watchers.append(callback)

        def unwatch() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return once(unwatch)
