"""
Plugin Lifecycle & Capability Registry

Plugin actions go through the bridge service; this module adds the local
bookkeeping the UI layer needs:

    - PluginManager keeps an InstalledPlugin record for every plugin it has
      seen succeed, so views can still show static fields when live
      metadata is unavailable
    - CAPABILITY_SURFACES maps capability tags to the UI extension surface
      a plugin contributes; extension points are derived from that table

Failures of install/update are data (status/error_reason/error_count on
the returned PluginInfo). Failures while describing a plugin for display
are logged and degrade to the local record; `describe` never raises.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .schemas import (
    GUI_METADATA,
    Get,
    Install,
    InstalledPlugin,
    PluginInfo,
    PluginStatus,
    Uninstall,
    Update,
)
from .service import BridgeService

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"


@dataclass(frozen=True)
class ExtensionSurface:
    """
    UI surface contributed by plugins declaring a capability.

    Attributes:
        capability: Capability tag enabling the surface
        container: Identifier of the generic container the component mounts in
        component_suffix: Suffix appended to the plugin's PascalCase name
    """

    capability: str
    container: str
    component_suffix: str


@dataclass(frozen=True)
class ExtensionPoint:
    """
    One extension component a plugin is expected to provide.

    Attributes:
        plugin_id: Plugin the component is scoped to
        component: Expected component name (e.g., "EchoBotSettings")
        container: Container the component mounts in
    """

    plugin_id: str
    component: str
    container: str


CAPABILITY_SURFACES: Dict[str, ExtensionSurface] = {
    GUI_METADATA: ExtensionSurface(
        capability=GUI_METADATA,
        container="plugin-container",
        component_suffix="Settings",
    ),
}


def component_name(display_name: str, suffix: str) -> str:
    """
    Derive a component name from a plugin display name.

    Example:
        component_name("Echo Bot", "Settings") -> "EchoBotSettings"
    """
    words = re.findall(r"[A-Za-z0-9]+", display_name)
    return "".join(word[:1].upper() + word[1:] for word in words) + suffix


def extension_points(info: PluginInfo) -> List[ExtensionPoint]:
    """
    List the extension points a plugin exposes through its capabilities.

    Capabilities without an entry in CAPABILITY_SURFACES are ignored.
    """
    points = []
    for capability in info.capabilities:
        surface = CAPABILITY_SURFACES.get(capability)
        if surface is None:
            continue
        points.append(
            ExtensionPoint(
                plugin_id=info.id,
                component=component_name(info.name, surface.component_suffix),
                container=surface.container,
            )
        )
    return points


@dataclass
class PluginView:
    """
    What the UI shows for one plugin.

    Attributes:
        id: Plugin identifier
        name: Display name
        version: Version string
        status: Status value, "unknown" when nothing is known
        error_reason: Failure reason when known
        extensions: Extension points to mount (empty when degraded)
        degraded: True when built from the local record instead of live info
    """

    id: str
    name: str
    version: str
    status: str
    error_reason: Optional[str] = None
    extensions: List[ExtensionPoint] = field(default_factory=list)
    degraded: bool = False


class PluginManager:
    """
    Plugin operations plus the local installed-plugin records.

    Attributes:
        service: Bridge service used for plugin actions
        installed: InstalledPlugin records keyed by plugin id
    """

    def __init__(self, service: BridgeService):
        self.service = service
        self.installed: Dict[str, InstalledPlugin] = {}

    async def install(self, reference: str) -> PluginInfo:
        """
        Install a plugin from a reference such as "echo-bot@1.0".

        Returns:
            PluginInfo; check `failed` for an unsuccessful install
        """
        info = await self.service.manage_plugins(Install(reference))
        self._record(info, source=reference)
        return info

    async def update(self, plugin_id: str) -> PluginInfo:
        """Re-install a plugin at its latest version."""
        info = await self.service.manage_plugins(Update(plugin_id))
        previous = self.installed.get(plugin_id)
        self._record(info, source=previous.source if previous else plugin_id)
        return info

    async def uninstall(self, plugin_id: str) -> PluginInfo:
        """Remove a plugin and forget its local record."""
        info = await self.service.manage_plugins(Uninstall(plugin_id))
        self.installed.pop(plugin_id, None)
        logger.info("Plugin '%s' uninstalled", plugin_id)
        return info

    async def get(self, plugin_id: str) -> PluginInfo:
        """Read the current PluginInfo. No side effects."""
        return await self.service.manage_plugins(Get(plugin_id))

    async def describe(self, plugin_id: str) -> PluginView:
        """
        Build the view of a plugin for display.

        Live metadata is preferred; when it cannot be fetched the view falls
        back to the locally held record (static fields only, no extension
        points).

        Args:
            plugin_id: Plugin identifier

        Returns:
            PluginView, never raises
        """
        try:
            info = await self.get(plugin_id)
        except Exception as e:
            logger.warning("Metadata for plugin '%s' unavailable: %s", plugin_id, e)
            return self._static_view(plugin_id)

        return PluginView(
            id=info.id,
            name=info.name,
            version=info.version,
            status=info.status.value,
            error_reason=info.error_reason,
            extensions=extension_points(info),
        )

    def _static_view(self, plugin_id: str) -> PluginView:
        record = self.installed.get(plugin_id)
        if record is None:
            return PluginView(
                id=plugin_id,
                name=plugin_id,
                version="",
                status=UNKNOWN_STATUS,
                degraded=True,
            )
        return PluginView(
            id=record.id,
            name=record.name,
            version=record.version,
            status=record.status.value,
            degraded=True,
        )

    def _record(self, info: PluginInfo, source: str) -> None:
        if info.failed:
            logger.warning(
                "Plugin '%s' failed (%d error(s)): %s",
                info.id,
                info.error_count,
                info.error_reason,
            )
            record = self.installed.get(info.id)
            if record is not None:
                record.status = PluginStatus.ERROR
            return

        self.installed[info.id] = InstalledPlugin(
            id=info.id,
            name=info.name,
            version=info.version,
            source=source,
            installed_at=datetime.now(timezone.utc).isoformat(),
            status=info.status,
        )
        logger.info("Plugin '%s' %s at version %s", info.id, info.status.value, info.version)
