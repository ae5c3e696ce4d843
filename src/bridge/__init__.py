"""
Bridge Package

This package provides the runtime bridge of the chat shell: a single
asynchronous command/event interface that hides which backend is present
(the desktop host's native bridge or an in-process engine), initializes
that backend exactly once, and layers plugin lifecycle and theming on top.

Modules:
    - runtime: backend detection and singleton initialization
    - service: command dispatch facade (BridgeService)
    - events: subscription bus primitives and the Event envelope
    - plugins: plugin lifecycle and capability registry
    - theme / settings: theme resolution and token propagation
    - loopback: in-memory reference engine
"""

from .config import BridgeConfig
from .errors import BackendInitError, BridgeError, CommandError
from .events import THEME_CHANGED, SubscriptionTable, UnlistenFn
from .plugins import (
    CAPABILITY_SURFACES,
    ExtensionPoint,
    ExtensionSurface,
    PluginManager,
    PluginView,
    extension_points,
)
from .runtime import (
    BackendResolver,
    get_default_resolver,
    is_ready,
    reset_backend,
    resolve_backend,
)
from .schemas import (
    ChatMessage,
    Event,
    Get,
    Install,
    PluginInfo,
    PluginStatus,
    RosterItem,
    UiConfig,
    Uninstall,
    Update,
)
from .service import BridgeService
from .settings import SettingsState, ThemeChoice
from .theme import (
    BUILTIN_THEMES,
    ColorSchemeMonitor,
    StyleSurface,
    ThemeColors,
    ThemeController,
    apply_plugin_colors,
    plugin_tokens,
)

__all__ = [
    # Runtime and service
    "BridgeConfig",
    "BackendResolver",
    "BridgeService",
    "get_default_resolver",
    "is_ready",
    "reset_backend",
    "resolve_backend",
    # Errors
    "BridgeError",
    "BackendInitError",
    "CommandError",
    # Events
    "THEME_CHANGED",
    "Event",
    "SubscriptionTable",
    "UnlistenFn",
    # Records and actions
    "ChatMessage",
    "RosterItem",
    "PluginInfo",
    "PluginStatus",
    "UiConfig",
    "Install",
    "Uninstall",
    "Update",
    "Get",
    # Plugins
    "CAPABILITY_SURFACES",
    "ExtensionPoint",
    "ExtensionSurface",
    "PluginManager",
    "PluginView",
    "extension_points",
    # Theme
    "BUILTIN_THEMES",
    "ColorSchemeMonitor",
    "SettingsState",
    "StyleSurface",
    "ThemeChoice",
    "ThemeColors",
    "ThemeController",
    "apply_plugin_colors",
    "plugin_tokens",
]
