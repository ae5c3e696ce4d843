"""
Tests for Plugin Lifecycle & Capability Registry

Tests plugin install/update/uninstall/get through the bridge against the
loopback engine, the local installed-plugin records and extension points.
"""

import pytest

from bridge import (
    BackendResolver,
    BridgeConfig,
    BridgeService,
    CommandError,
    PluginInfo,
    PluginManager,
    PluginStatus,
    extension_points,
)
from bridge.loopback import CatalogEntry, WaddleCore
from bridge.plugins import UNKNOWN_STATUS, component_name
from bridge.schemas import GUI_METADATA

CATALOG = {
    "echo-bot": CatalogEntry(
        name="Echo Bot", versions=["1.0", "1.1"], capabilities=[GUI_METADATA]
    ),
    "weather": CatalogEntry(name="Weather", versions=["0.3"]),
}


def make_manager(catalog=CATALOG):
    core = WaddleCore(jid="me@localhost", catalog=catalog)

    async def loader(module_name):
        return core

    service = BridgeService(
        resolver=BackendResolver(config=BridgeConfig(), engine_loader=loader)
    )
    return PluginManager(service), core


@pytest.mark.asyncio
async def test_install_echo_bot():
    """Test installing a plugin at an explicit version."""
    manager, _ = make_manager()

    info = await manager.install("echo-bot@1.0")

    assert info.id == "echo-bot"
    assert info.status is PluginStatus.ACTIVE
    assert info.error_reason is None
    assert info.error_count == 0
    assert info.version == "1.0"
    record = manager.installed["echo-bot"]
    assert record.source == "echo-bot@1.0"
    assert record.installed_at


@pytest.mark.asyncio
async def test_install_is_idempotent_for_same_version():
    """Test that re-installing the same version changes nothing."""
    manager, core = make_manager()

    first = await manager.install("echo-bot@1.0")
    second = await manager.install("echo-bot@1.0")

    assert first == second
    assert second.error_count == 0
    assert len(core.plugins) == 1


@pytest.mark.asyncio
async def test_install_without_version_uses_latest():
    """Test that a bare id resolves to the newest catalog version."""
    manager, _ = make_manager()

    info = await manager.install("echo-bot")

    assert info.version == "1.1"


@pytest.mark.asyncio
async def test_unresolvable_reference_is_reported_not_raised():
    """Test that an unknown plugin yields an error status."""
    manager, _ = make_manager()

    info = await manager.install("missing")

    assert info.status is PluginStatus.ERROR
    assert info.error_reason
    assert info.error_count == 1
    assert "missing" not in manager.installed


@pytest.mark.asyncio
async def test_repeated_failures_increment_error_count():
    """Test that each failed operation increments the error count."""
    manager, _ = make_manager()
    await manager.install("echo-bot@1.0")

    first = await manager.install("echo-bot@9.9")
    second = await manager.install("echo-bot@9.9")

    assert first.error_count == 1
    assert second.error_count == 2
    assert manager.installed["echo-bot"].status is PluginStatus.ERROR


@pytest.mark.asyncio
async def test_invalid_reference_is_not_stored():
    """Test that a malformed reference does not create a registry entry."""
    manager, core = make_manager()

    info = await manager.install("Not A Plugin!")

    assert info.failed
    assert core.plugins == {}


@pytest.mark.asyncio
async def test_get_has_no_side_effects():
    """Test that get returns the current info without changing it."""
    manager, core = make_manager()
    await manager.install("echo-bot@1.0")
    events = []
    core.on("plugin.status.changed", events.append)

    info = await manager.get("echo-bot")
    again = await manager.get("echo-bot")

    assert info == again
    assert events == []
    assert core.plugins["echo-bot"].version == "1.0"


@pytest.mark.asyncio
async def test_update_moves_to_latest():
    """Test that update re-installs at the latest version."""
    manager, _ = make_manager()
    await manager.install("echo-bot@1.0")

    info = await manager.update("echo-bot")

    assert info.version == "1.1"
    assert manager.installed["echo-bot"].version == "1.1"
    assert manager.installed["echo-bot"].source == "echo-bot@1.0"


@pytest.mark.asyncio
async def test_uninstall_returns_removed():
    """Test that uninstall reports the removed status and drops the record."""
    manager, core = make_manager()
    await manager.install("weather")

    info = await manager.uninstall("weather")

    assert info.status is PluginStatus.REMOVED
    assert "weather" not in manager.installed
    assert "weather" not in core.plugins


@pytest.mark.asyncio
async def test_actions_on_unknown_plugin_raise():
    """Test that uninstall, update and get reject unknown ids."""
    manager, _ = make_manager()

    with pytest.raises(CommandError):
        await manager.uninstall("ghost")
    with pytest.raises(CommandError):
        await manager.update("ghost")
    with pytest.raises(CommandError):
        await manager.get("ghost")


@pytest.mark.asyncio
async def test_status_events_are_emitted():
    """Test that install emits a plugin.status.changed payload."""
    manager, core = make_manager()
    events = []
    core.on("plugin.status.changed", events.append)

    await manager.install("weather")

    assert events[0]["id"] == "weather"
    assert events[0]["status"] == "active"


def test_component_name():
    """Test component name derivation from a display name."""
    assert component_name("Echo Bot", "Settings") == "EchoBotSettings"
    assert component_name("weather", "Settings") == "WeatherSettings"


def test_extension_points_follow_capabilities():
    """Test that gui-metadata yields one settings extension point."""
    info = PluginInfo(
        id="echo-bot",
        name="Echo Bot",
        version="1.0",
        capabilities=[GUI_METADATA, "storage"],
    )

    points = extension_points(info)

    assert len(points) == 1
    assert points[0].component == "EchoBotSettings"
    assert points[0].container == "plugin-container"
    assert points[0].plugin_id == "echo-bot"


@pytest.mark.asyncio
async def test_describe_includes_extensions():
    """Test that a live description carries extension points."""
    manager, _ = make_manager()
    await manager.install("echo-bot@1.0")

    view = await manager.describe("echo-bot")

    assert not view.degraded
    assert view.status == "active"
    assert [point.component for point in view.extensions] == ["EchoBotSettings"]


@pytest.mark.asyncio
async def test_describe_degrades_to_local_record():
    """Test that describe falls back to static fields when get fails."""
    manager, core = make_manager()
    await manager.install("echo-bot@1.0")
    del core.plugins["echo-bot"]

    view = await manager.describe("echo-bot")

    assert view.degraded
    assert view.name == "Echo Bot"
    assert view.version == "1.0"
    assert view.extensions == []


@pytest.mark.asyncio
async def test_describe_unknown_plugin_without_record():
    """Test that describe never raises, even with nothing known."""
    manager, _ = make_manager()

    view = await manager.describe("ghost")

    assert view.degraded
    assert view.status == UNKNOWN_STATUS
