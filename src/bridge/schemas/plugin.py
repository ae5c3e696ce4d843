"""
Plugin Schema Definitions

This module defines plugin records and the closed set of plugin actions
sent through `manage_plugins`.

Wire format of an action:
    {"action": "install", "reference": "echo-bot@1.0"}
    {"action": "uninstall" | "update" | "get", "pluginId": "echo-bot"}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .base import BaseRecord, BaseRequest

GUI_METADATA = "gui-metadata"


class PluginStatus(str, Enum):
    """Closed set of plugin states reported by a backend."""

    LOADING = "loading"
    ACTIVE = "active"
    ERROR = "error"
    UNLOADING = "unloading"
    DISABLED = "disabled"
    REMOVED = "removed"


@dataclass
class PluginInfo(BaseRecord):
    """
    Description of one installed or queried plugin.

    Attributes:
        id: Plugin identifier
        name: Display name
        version: Installed version
        status: Current PluginStatus
        error_reason: Failure reason, only set when status is ERROR
        error_count: Number of failed operations observed for this plugin
        capabilities: Capability tags (e.g., "gui-metadata")
    """

    id: str
    name: str
    version: str
    status: PluginStatus = PluginStatus.ACTIVE
    error_reason: Optional[str] = None
    error_count: int = 0
    capabilities: List[str] = field(default_factory=list)

    _WIRE_NAMES = {"error_reason": "errorReason", "error_count": "errorCount"}

    def __post_init__(self) -> None:
        # Raises ValueError for values outside the closed set
        self.status = PluginStatus(self.status)
        self.capabilities = list(self.capabilities or [])

    @property
    def failed(self) -> bool:
        """True when the last operation on this plugin failed."""
        return self.status is PluginStatus.ERROR

    def has_capability(self, capability: str) -> bool:
        """Check whether the plugin declares a capability tag."""
        return capability in self.capabilities


@dataclass
class InstalledPlugin(BaseRecord):
    """
    Locally held record of an installed plugin.

    Used to render static fields when live metadata is unavailable.

    Attributes:
        id: Plugin identifier
        name: Display name
        version: Installed version
        source: Reference the plugin was installed from
        installed_at: ISO 8601 timestamp of the install
        status: Last known status
    """

    id: str
    name: str
    version: str
    source: str = ""
    installed_at: str = ""
    status: PluginStatus = PluginStatus.ACTIVE

    _WIRE_NAMES = {"installed_at": "installedAt"}

    def __post_init__(self) -> None:
        self.status = PluginStatus(self.status)


class PluginAction(BaseRequest):
    """Base class of the four plugin actions."""

    _tag_key = "action"
    _WIRE_NAMES = {"plugin_id": "pluginId"}


@dataclass
class Install(PluginAction):
    """
    Install a plugin.

    Attributes:
        reference: Plugin reference, "<id>" or "<id>@<version>"
    """

    reference: str

    @property
    def _tag(self) -> str:
        """Return the tag for install actions."""
        return "install"


@dataclass
class Uninstall(PluginAction):
    """Remove an installed plugin."""

    plugin_id: str

    @property
    def _tag(self) -> str:
        return "uninstall"


@dataclass
class Update(PluginAction):
    """Re-install a plugin at its latest resolvable version."""

    plugin_id: str

    @property
    def _tag(self) -> str:
        return "update"


@dataclass
class Get(PluginAction):
    """Read the current state of a plugin. Has no side effects."""

    plugin_id: str

    @property
    def _tag(self) -> str:
        return "get"


AnyPluginAction = Union[Install, Uninstall, Update, Get]

_ACTIONS = {
    "install": (Install, "reference"),
    "uninstall": (Uninstall, "pluginId"),
    "update": (Update, "pluginId"),
    "get": (Get, "pluginId"),
}


def plugin_action_from_dict(data: Dict[str, Any]) -> AnyPluginAction:
    """
    Decode a plugin action from its wire dictionary.

    Args:
        data: Dictionary with an "action" tag and the matching field

    Returns:
        The decoded action

    Raises:
        ValueError: If the tag is unknown or its field is missing
    """
    tag = data.get("action")
    if tag not in _ACTIONS:
        raise ValueError(f"Unknown plugin action: {tag!r}")
    action_cls, key = _ACTIONS[tag]
    value = data.get(key, data.get("plugin_id") if key == "pluginId" else None)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Plugin action '{tag}' requires '{key}'")
    return action_cls(value)
