"""
Theme Resolution & Token Propagation

Resolves the theme choice to one of the built-in palettes and writes its
nine role colors as style variables on the root render surface. Plugins may
add their own tokens under a per-plugin namespace.

Triggers:
    - settings change (explicit user selection)
    - OS color-scheme change, only while the choice is "system"
    - remote "ui.theme.changed" events naming a built-in palette; these
      re-apply the palette regardless of the stored choice, unknown names
      are ignored
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Mapping, Optional

from .events import THEME_CHANGED, UnlistenFn, once
from .schemas import Event
from .settings import SettingsState, ThemeChoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThemeColors:
    """The nine role colors of a palette."""

    background: str
    foreground: str
    surface: str
    accent: str
    border: str
    success: str
    warning: str
    error: str
    muted: str


BUILTIN_THEMES: Dict[str, ThemeColors] = {
    "light": ThemeColors(
        background="#ffffff",
        foreground="#1a1a1a",
        surface="#f5f5f5",
        accent="#0066cc",
        border="#d4d4d4",
        success="#22863a",
        warning="#b08800",
        error="#cb2431",
        muted="#6a737d",
    ),
    "dark": ThemeColors(
        background="#1e1e2e",
        foreground="#cdd6f4",
        surface="#313244",
        accent="#89b4fa",
        border="#45475a",
        success="#a6e3a1",
        warning="#f9e2af",
        error="#f38ba8",
        muted="#6c7086",
    ),
    "high-contrast": ThemeColors(
        background="#000000",
        foreground="#ffffff",
        surface="#1a1a1a",
        accent="#ffff00",
        border="#ffffff",
        success="#00ff00",
        warning="#ffff00",
        error="#ff0000",
        muted="#aaaaaa",
    ),
}

# role -> style variable
ROLE_VARIABLES: Dict[str, str] = {
    "background": "--waddle-bg",
    "foreground": "--waddle-fg",
    "surface": "--waddle-surface",
    "accent": "--waddle-accent",
    "border": "--waddle-border",
    "success": "--waddle-success",
    "warning": "--waddle-warning",
    "error": "--waddle-error",
    "muted": "--waddle-muted",
}

PLUGIN_PREFIX = "--waddle-plugin-"
_NAMESPACE_WORD = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^a-z0-9]+")


class StyleSurface:
    """
    Root render surface holding named style variables.

    Writes are applied as one update and reported to change listeners once
    per update.
    """

    def __init__(self):
        self._properties: Dict[str, str] = {}
        self._listeners: List[Callable[[Dict[str, str]], None]] = []

    def set_properties(self, values: Mapping[str, str]) -> None:
        """Set several variables in one step."""
        if not values:
            return
        self._properties = {**self._properties, **values}
        changed = dict(values)
        for listener in list(self._listeners):
            listener(changed)

    def get(self, name: str) -> Optional[str]:
        """Value of one variable, or None."""
        return self._properties.get(name)

    @property
    def properties(self) -> Dict[str, str]:
        """Copy of every variable currently set."""
        return dict(self._properties)

    def on_change(self, listener: Callable[[Dict[str, str]], None]) -> UnlistenFn:
        """Register a listener receiving the variables of each update."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return once(remove)


class ColorSchemeMonitor:
    """
    OS color-scheme preference.

    The shell feeds OS notifications in through `set_dark`; subscribers are
    only called when the preference actually changes.
    """

    def __init__(self, dark: bool = False):
        self._dark = dark
        self._subscribers: List[Callable[[bool], None]] = []

    def prefers_dark(self) -> bool:
        return self._dark

    def set_dark(self, dark: bool) -> None:
        if dark == self._dark:
            return
        self._dark = dark
        logger.debug("OS color scheme changed (dark=%s)", dark)
        for subscriber in list(self._subscribers):
            subscriber(dark)

    def subscribe(self, callback: Callable[[bool], None]) -> UnlistenFn:
        self._subscribers.append(callback)

        def remove() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return once(remove)


def theme_variables(colors: ThemeColors) -> Dict[str, str]:
    """Map a palette to its nine role variables."""
    return {ROLE_VARIABLES[role]: value for role, value in asdict(colors).items()}


def apply_theme_colors(surface: StyleSurface, colors: ThemeColors) -> None:
    """Write all nine role variables of a palette in one update."""
    surface.set_properties(theme_variables(colors))


def resolve_choice(choice: ThemeChoice, color_scheme: ColorSchemeMonitor) -> str:
    """Resolve a choice to a built-in palette name."""
    if choice is ThemeChoice.SYSTEM:
        return "dark" if color_scheme.prefers_dark() else "light"
    return choice.value


def token_slug(token: str) -> str:
    """
    Normalize a plugin token to lowercase words joined by single hyphens.

    Example:
        token_slug("tempColor") -> "temp-color"

    Raises:
        ValueError: If the token has no letters or digits
    """
    slug = _NON_WORD.sub("-", _CAMEL_BOUNDARY.sub("-", token).lower()).strip("-")
    if not slug:
        raise ValueError(f"Invalid token for theme: {token!r}")
    return slug


def plugin_token_name(plugin_id: str, token: str) -> str:
    """
    Style variable for a plugin-contributed token.

    Example:
        plugin_token_name("weather", "tempColor") -> "--waddle-plugin-weather--temp-color"

    Raises:
        ValueError: If the id is not lowercase words joined by single
                    hyphens, or the token has no letters or digits
    """
    if not _NAMESPACE_WORD.match(plugin_id):
        raise ValueError(f"Invalid plugin id for theme token: {plugin_id!r}")
    return f"{PLUGIN_PREFIX}{plugin_id}--{token_slug(token)}"


def apply_plugin_colors(
    surface: StyleSurface, plugin_id: str, tokens: Mapping[str, str]
) -> None:
    """
    Write plugin tokens under the plugin's namespace.

    Role variables are never touched. Token names are normalized with
    `token_slug`; all names are checked before any variable is written.
    """
    values = {plugin_token_name(plugin_id, token): value for token, value in tokens.items()}
    surface.set_properties(values)


def plugin_tokens(surface: StyleSurface, plugin_id: str) -> Dict[str, str]:
    """Read back the tokens a plugin has contributed."""
    prefix = f"{PLUGIN_PREFIX}{plugin_id}--"
    return {
        name[len(prefix):]: value
        for name, value in surface.properties.items()
        if name.startswith(prefix)
    }


class ThemeController:
    """
    Keeps the render surface in sync with the theme choice.

    Attributes:
        service: Bridge service used to listen for remote theme events
        settings: Settings state holding the theme choice
        surface: Render surface receiving the style variables
        color_scheme: OS color-scheme preference
        active_palette: Name of the palette last applied
    """

    def __init__(
        self,
        service,
        settings: SettingsState,
        surface: StyleSurface,
        color_scheme: Optional[ColorSchemeMonitor] = None,
    ):
        self.service = service
        self.settings = settings
        self.surface = surface
        self.color_scheme = color_scheme or ColorSchemeMonitor()
        self.active_palette: Optional[str] = None
        self._unlisteners: List[UnlistenFn] = []

    def apply_choice(self, choice: ThemeChoice) -> None:
        """Apply the palette for a choice, resolving "system" now."""
        self.apply_palette(resolve_choice(ThemeChoice(choice), self.color_scheme))

    def apply_palette(self, name: str) -> bool:
        """
        Apply a built-in palette by name.

        Returns:
            False if the name is not a built-in palette (nothing changes)
        """
        colors = BUILTIN_THEMES.get(name)
        if colors is None:
            return False
        apply_theme_colors(self.surface, colors)
        self.active_palette = name
        logger.info("Applied theme palette '%s'", name)
        return True

    async def start(self) -> None:
        """
        Apply the current choice and install the change subscriptions.

        The OS subscription is installed once and filters on the current
        choice.
        """
        if self._unlisteners:
            return
        # Nothing is recorded if the remote subscription fails
        remote = await self.service.listen(THEME_CHANGED, self._on_theme_event)
        self.apply_choice(self.settings.theme)
        self._unlisteners = [
            remote,
            self.settings.watch_theme(self.apply_choice),
            self.color_scheme.subscribe(self._on_color_scheme),
        ]

    def stop(self) -> None:
        """Release every subscription installed by `start`."""
        for unlisten in self._unlisteners:
            unlisten()
        self._unlisteners = []

    def _on_color_scheme(self, dark: bool) -> None:
        if self.settings.theme is ThemeChoice.SYSTEM:
            self.apply_choice(ThemeChoice.SYSTEM)

    def _on_theme_event(self, event: Event) -> None:
        payload = event.payload
        name = payload.get("name") if isinstance(payload, dict) else None
        if not isinstance(name, str) or not self.apply_palette(name):
            logger.debug("Ignoring theme event with payload %r", payload)
