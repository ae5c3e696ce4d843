"""
Tests for Theme Resolution & Token Propagation

Tests palette application, plugin token namespacing, remote theme events
and the OS color-scheme trigger.
"""

import pytest

from bridge import (
    BUILTIN_THEMES,
    THEME_CHANGED,
    ColorSchemeMonitor,
    SettingsState,
    StyleSurface,
    ThemeChoice,
    ThemeController,
    apply_plugin_colors,
    plugin_tokens,
)
from bridge.events import SubscriptionTable, envelope_callback
from bridge.schemas import UiConfig
from bridge.settings import parse_theme_choice
from bridge.theme import ROLE_VARIABLES, plugin_token_name, resolve_choice


class FakeService:
    """Service stand-in with a local event table."""

    def __init__(self, config=None):
        self.config = config or UiConfig()
        self.table = SubscriptionTable()
        self.config_calls = 0

    async def listen(self, channel, callback):
        return self.table.subscribe(channel, envelope_callback(callback))

    async def get_config(self):
        self.config_calls += 1
        return self.config

    def emit(self, channel, payload):
        self.table.emit(channel, payload)


async def make_controller(choice=ThemeChoice.LIGHT, dark=False):
    service = FakeService()
    settings = SettingsState(theme=choice)
    surface = StyleSurface()
    color_scheme = ColorSchemeMonitor(dark=dark)
    controller = ThemeController(service, settings, surface, color_scheme)
    await controller.start()
    return controller, service, settings, surface, color_scheme


def role_values(surface):
    return {name: surface.get(name) for name in ROLE_VARIABLES.values()}


@pytest.mark.asyncio
async def test_dark_then_light_sets_all_nine_roles():
    """Test that every role variable follows the applied palette."""
    controller, _, settings, surface, _ = await make_controller(ThemeChoice.DARK)

    assert role_values(surface)["--waddle-bg"] == BUILTIN_THEMES["dark"].background
    assert None not in role_values(surface).values()

    settings.theme = ThemeChoice.LIGHT

    light = BUILTIN_THEMES["light"]
    assert role_values(surface) == {
        "--waddle-bg": light.background,
        "--waddle-fg": light.foreground,
        "--waddle-surface": light.surface,
        "--waddle-accent": light.accent,
        "--waddle-border": light.border,
        "--waddle-success": light.success,
        "--waddle-warning": light.warning,
        "--waddle-error": light.error,
        "--waddle-muted": light.muted,
    }


@pytest.mark.asyncio
async def test_palette_is_written_in_one_update():
    """Test that a palette change notifies surface listeners once."""
    controller, _, settings, surface, _ = await make_controller()
    updates = []
    surface.on_change(updates.append)

    settings.theme = ThemeChoice.DARK

    assert len(updates) == 1
    assert len(updates[0]) == 9


@pytest.mark.asyncio
async def test_plugin_tokens_do_not_touch_roles():
    """Test that plugin tokens live in their own namespace."""
    controller, _, _, surface, _ = await make_controller()
    before = role_values(surface)

    apply_plugin_colors(surface, "weather", {"temp": "#ff8800"})

    assert role_values(surface) == before
    assert surface.get("--waddle-plugin-weather--temp") == "#ff8800"
    assert plugin_tokens(surface, "weather") == {"temp": "#ff8800"}


def test_plugin_token_names_cannot_collide():
    """Test that ids must be hyphenated lowercase words."""
    assert plugin_token_name("my-plugin", "bg") == "--waddle-plugin-my-plugin--bg"
    with pytest.raises(ValueError):
        plugin_token_name("my--plugin", "bg")
    with pytest.raises(ValueError):
        plugin_token_name("weather", "!!!")


def test_plugin_token_names_are_normalized():
    """Test that mixed-case and punctuated tokens are written, not rejected."""
    assert plugin_token_name("weather", "tempColor") == "--waddle-plugin-weather--temp-color"
    assert plugin_token_name("weather", "Temp") == "--waddle-plugin-weather--temp"
    assert plugin_token_name("weather", "bg--alt") == "--waddle-plugin-weather--bg-alt"
    assert plugin_token_name("weather", "rain_color") == "--waddle-plugin-weather--rain-color"


def test_apply_plugin_colors_writes_every_token():
    """Test that each token entry ends up on the surface."""
    surface = StyleSurface()

    apply_plugin_colors(surface, "weather", {"tempColor": "#ff8800", "bg": "#000000"})

    assert plugin_tokens(surface, "weather") == {
        "temp-color": "#ff8800",
        "bg": "#000000",
    }


@pytest.mark.asyncio
async def test_remote_theme_event_overrides_choice():
    """Test that a remote palette event applies even against the choice."""
    controller, service, settings, surface, _ = await make_controller(ThemeChoice.LIGHT)

    service.emit(THEME_CHANGED, {"name": "dark"})

    assert surface.get("--waddle-bg") == BUILTIN_THEMES["dark"].background
    assert controller.active_palette == "dark"
    assert settings.theme is ThemeChoice.LIGHT


@pytest.mark.asyncio
async def test_remote_high_contrast_palette():
    """Test that any built-in palette can be applied remotely."""
    controller, service, _, surface, _ = await make_controller()

    service.emit(THEME_CHANGED, {"name": "high-contrast"})

    assert surface.get("--waddle-accent") == BUILTIN_THEMES["high-contrast"].accent


@pytest.mark.asyncio
async def test_unknown_remote_theme_is_ignored():
    """Test that unknown names and bad payloads change nothing."""
    controller, service, _, surface, _ = await make_controller()
    before = surface.properties

    service.emit(THEME_CHANGED, {"name": "solarized"})
    service.emit(THEME_CHANGED, "dark")
    service.emit(THEME_CHANGED, None)

    assert surface.properties == before
    assert controller.active_palette == "light"


@pytest.mark.asyncio
async def test_system_choice_follows_os_scheme():
    """Test that OS changes re-apply only while the choice is system."""
    controller, _, settings, surface, color_scheme = await make_controller(
        ThemeChoice.SYSTEM, dark=False
    )
    assert controller.active_palette == "light"

    color_scheme.set_dark(True)
    assert controller.active_palette == "dark"

    settings.theme = ThemeChoice.LIGHT
    color_scheme.set_dark(False)
    color_scheme.set_dark(True)
    assert controller.active_palette == "light"


@pytest.mark.asyncio
async def test_stop_releases_subscriptions():
    """Test that stop detaches settings, OS and remote triggers."""
    controller, service, settings, surface, color_scheme = await make_controller(
        ThemeChoice.SYSTEM
    )
    controller.stop()

    settings.theme = ThemeChoice.DARK
    service.emit(THEME_CHANGED, {"name": "dark"})
    color_scheme.set_dark(True)

    assert controller.active_palette == "light"
    assert service.table.subscriber_count(THEME_CHANGED) == 0


def test_resolve_choice():
    """Test resolving explicit and system choices."""
    assert resolve_choice(ThemeChoice.DARK, ColorSchemeMonitor()) == "dark"
    assert resolve_choice(ThemeChoice.SYSTEM, ColorSchemeMonitor(dark=True)) == "dark"
    assert resolve_choice(ThemeChoice.SYSTEM, ColorSchemeMonitor()) == "light"


def test_parse_theme_choice_fallback():
    """Test that unknown stored choices fall back to system."""
    assert parse_theme_choice("dark") is ThemeChoice.DARK
    assert parse_theme_choice("purple") is ThemeChoice.SYSTEM
    assert parse_theme_choice(None) is ThemeChoice.SYSTEM


@pytest.mark.asyncio
async def test_settings_load_runs_once():
    """Test that settings are read from the backend a single time."""
    service = FakeService(UiConfig(theme="dark", theme_name="nord", locale="fr"))
    settings = SettingsState()
    changes = []
    settings.watch_theme(changes.append)

    await settings.load(service)
    await settings.load(service)

    assert service.config_calls == 1
    assert settings.theme is ThemeChoice.DARK
    assert settings.theme_name == "nord"
    assert settings.locale == "fr"
    assert changes == [ThemeChoice.DARK]


def test_theme_watchers_only_fire_on_change():
    """Test that setting the same choice does not notify."""
    settings = SettingsState(theme=ThemeChoice.LIGHT)
    changes = []
    unwatch = settings.watch_theme(changes.append)

    settings.theme = ThemeChoice.LIGHT
    settings.theme = ThemeChoice.DARK
    unwatch()
    settings.theme = ThemeChoice.LIGHT

    assert changes == [ThemeChoice.DARK]


def test_color_scheme_notifies_on_change_only():
    """Test that repeated OS values do not notify subscribers."""
    monitor = ColorSchemeMonitor()
    seen = []
    monitor.subscribe(seen.append)

    monitor.set_dark(False)
    monitor.set_dark(True)
    monitor.set_dark(True)

    assert seen == [True]


@pytest.mark.asyncio
async def test_start_after_failed_listen_installs_everything():
    """Test that a failed start leaves no partial subscriptions behind."""

    class FlakyService(FakeService):
        def __init__(self):
            super().__init__()
            self.failures = 1

        async def listen(self, channel, callback):
            if self.failures:
                self.failures -= 1
                raise ConnectionError("backend unavailable")
            return await super().listen(channel, callback)

    service = FlakyService()
    settings = SettingsState(theme=ThemeChoice.LIGHT)
    surface = StyleSurface()
    controller = ThemeController(service, settings, surface, ColorSchemeMonitor())

    with pytest.raises(ConnectionError):
        await controller.start()
    settings.theme = ThemeChoice.DARK
    assert controller.active_palette is None

    await controller.start()
    assert controller.active_palette == "dark"

    service.emit(THEME_CHANGED, {"name": "high-contrast"})
    assert controller.active_palette == "high-contrast"
    assert service.table.subscriber_count(THEME_CHANGED) == 1
