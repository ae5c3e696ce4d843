"""
Shell Application UI

Main application class for the chat shell terminal UI, built using the
Textual framework. All backend access goes through the bridge; the theme
controller's style variables are exposed to Textual CSS as `$waddle-*`
variables.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import (
    Container,
    Horizontal,
    Vertical,
    ScrollableContainer,
)
from textual.css.query import NoMatches
from textual.widget import Widget
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    Static,
)

from bridge import (
    BUILTIN_THEMES,
    BridgeConfig,
    BridgeService,
    ChatMessage,
    ColorSchemeMonitor,
    Event,
    PluginManager,
    PluginView,
    RosterItem,
    SettingsState,
    StyleSurface,
    ThemeChoice,
    ThemeController,
)
from bridge.theme import theme_variables

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 50

# Extension components available to plugins declaring "gui-metadata",
# keyed by component name; each factory receives the plugin id.
EXTENSION_COMPONENTS: Dict[str, Callable[[str], Widget]] = {}


def register_extension(name: str, factory: Callable[[str], Widget]) -> None:
    """Make an extension component available to plugin views."""
    EXTENSION_COMPONENTS[name] = factory


def format_plugin_view(view: PluginView) -> str:
    """Render the static part of a plugin view as markup."""
    lines = [
        f"[bold]{view.name}[/] [dim]({view.id})[/]",
        f"Version: {view.version or '-'}",
        f"Status: {view.status}",
    ]
    if view.error_reason:
        lines.append(f"[red]Error: {view.error_reason}[/]")
    if view.degraded:
        lines.append("[yellow]Live plugin metadata unavailable[/]")
    return "\n".join(lines)


def format_roster_item(item: RosterItem) -> str:
    """One roster line: name, presence and group."""
    group = f" [dim]{item.group}[/]" if item.group else ""
    return f"{item.name} [italic]{item.presence}[/]{group}"


class MessageDisplay(Static):
    """Widget for displaying a single chat message."""

    def __init__(self, message: ChatMessage, is_own_message: bool = False) -> None:
        """Initialize message display."""
        super().__init__()
        self.message = message
        self.is_own_message = is_own_message

    def compose(self) -> ComposeResult:
        """Compose the message display."""
        time_part = (
            self.message.sent_at.split("T")[1][:8]
            if "T" in self.message.sent_at
            else ""
        )
        prefix = "You" if self.is_own_message else self.message.from_jid
        yield Static(
            f"[bold]{prefix}[/] [dim]{time_part}[/]\n{self.message.body}",
            classes="message-content",
        )


class RosterScreen(Container):
    """Screen listing contacts and joining rooms."""

    def compose(self) -> ComposeResult:
        """Compose the roster screen."""
        yield Static("[bold]Contacts[/]", classes="screen-title")
        yield ListView(id="roster-list")
        with Horizontal(id="room-row"):
            yield Input(placeholder="room@conference.example.org", id="room-jid-input")
            yield Input(placeholder="nickname", id="room-nick-input")
            yield Button("Join Room", id="join-room-btn", variant="primary")
        yield Static("", id="roster-status", classes="status-message")


class ChatScreen(Container):
    """Screen for one conversation."""

    def compose(self) -> ComposeResult:
        """Compose the chat screen."""
        yield Static("", id="chat-header", classes="chat-header")
        yield Button("Load older", id="older-btn", variant="default")
        yield ScrollableContainer(id="messages-container")
        with Horizontal(id="message-input-row"):
            yield Input(placeholder="Type a message...", id="message-input")
            yield Button("Send", id="send-btn", variant="primary")
            yield Button("Leave Room", id="leave-room-btn", variant="warning")


class PluginScreen(Container):
    """Screen for installing and inspecting plugins."""

    def compose(self) -> ComposeResult:
        """Compose the plugin screen."""
        yield Static("[bold]Plugins[/]", classes="screen-title")
        with Horizontal(id="plugin-actions"):
            yield Input(placeholder="echo-bot@1.0", id="plugin-ref-input")
            yield Button("Install", id="install-btn", variant="primary")
            yield Button("Update", id="update-btn", variant="default")
            yield Button("Uninstall", id="uninstall-btn", variant="error")
        with Horizontal(id="plugin-body"):
            yield ListView(id="plugin-list")
            with Vertical(id="plugin-detail"):
                yield Static("", id="plugin-info")
                yield Container(id="plugin-container")
        yield Static("", id="plugin-status", classes="status-message")


class SettingsScreen(Container):
    """Screen for theme and presence settings."""

    def compose(self) -> ComposeResult:
        """Compose the settings screen."""
        yield Static("[bold]Settings[/]", classes="screen-title")
        yield Label("Theme:")
        with Horizontal(classes="button-row"):
            yield Button("Light", id="theme-light-btn")
            yield Button("Dark", id="theme-dark-btn")
            yield Button("System", id="theme-system-btn")
            yield Button("Toggle OS scheme", id="os-scheme-btn")
        yield Label("Presence:")
        with Horizontal(classes="button-row"):
            yield Button("Available", id="presence-available-btn")
            yield Button("Away", id="presence-away-btn")
            yield Button("Do not disturb", id="presence-dnd-btn")
        yield Static("", id="settings-status", classes="status-message")


class ShellApp(App):
    """Main chat shell application."""

    CSS = """
    Screen {
        layout: vertical;
        background: $waddle-bg;
        color: $waddle-fg;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    .status-message {
        text-align: center;
        padding: 1;
        color: $waddle-muted;
    }

    RosterScreen, ChatScreen, PluginScreen, SettingsScreen {
        padding: 1;
        height: 1fr;
    }

    #roster-list, #plugin-list {
        height: 1fr;
        background: $waddle-surface;
        border: solid $waddle-border;
    }

    #room-row, #plugin-actions, #message-input-row, .button-row {
        height: 3;
    }

    #room-jid-input, #plugin-ref-input, #message-input {
        width: 1fr;
    }

    .chat-header {
        padding: 1;
        background: $waddle-surface;
        text-align: center;
    }

    #messages-container {
        height: 1fr;
        padding: 1;
    }

    .message-content {
        padding: 0 1;
    }

    #plugin-body {
        height: 1fr;
    }

    #plugin-list {
        width: 1fr;
    }

    #plugin-detail {
        width: 2fr;
        padding: 0 1;
    }

    #plugin-container {
        border: solid $waddle-accent;
        height: auto;
    }

    Button {
        margin: 0 1 0 0;
    }

    .hidden {
        display: none;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("escape", "go_back", "Back", show=True),
        Binding("p", "show_plugins", "Plugins", show=True),
        Binding("s", "show_settings", "Settings", show=True),
    ]

    def __init__(
        self,
        service: Optional[BridgeService] = None,
        config: Optional[BridgeConfig] = None,
    ) -> None:
        """Initialize the shell application."""
        super().__init__()
        self.bridge_config = config or BridgeConfig.from_env()
        self.bridge = service or BridgeService()
        self.settings_state = SettingsState()
        self.style_surface = StyleSurface()
        self.color_scheme = ColorSchemeMonitor(
            dark=self.bridge_config.color_scheme == "dark"
        )
        self.theme_controller = ThemeController(
            self.bridge, self.settings_state, self.style_surface, self.color_scheme
        )
        self.plugin_manager = PluginManager(self.bridge)
        self.roster: List[RosterItem] = []
        self.current_jid: Optional[str] = None
        self.current_is_room = False
        self.messages: List[ChatMessage] = []
        self.rooms: Dict[str, str] = {}
        self.selected_plugin: Optional[str] = None
        self._current_screen = "roster"
        self._startup_task: Optional[asyncio.Task] = None
        self._unlisteners: list = []
        self.style_surface.on_change(self._on_surface_changed)

    def get_css_variables(self) -> Dict[str, str]:
        """Expose the render surface's style variables to Textual CSS."""
        variables = super().get_css_variables()
        values = theme_variables(BUILTIN_THEMES["light"])
        surface = getattr(self, "style_surface", None)
        if surface is not None:
            values.update(surface.properties)
        variables.update({name.lstrip("-"): value for name, value in values.items()})
        return variables

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield RosterScreen(id="roster-screen")
        yield ChatScreen(id="chat-screen")
        yield PluginScreen(id="plugin-screen")
        yield SettingsScreen(id="settings-screen")
        yield Footer()

    def on_mount(self) -> None:
        """Handle application mount."""
        self._show_screen("roster")
        self._startup_task = asyncio.create_task(self._start_bridge())

    async def on_unmount(self) -> None:
        """Release subscriptions and close the backend."""
        self.theme_controller.stop()
        for unlisten in self._unlisteners:
            unlisten()
        self._unlisteners = []
        if self.bridge.ready:
            await self.bridge.close()

    def _show_screen(self, screen_name: str) -> None:
        """Show a specific screen and hide others."""
        screens = {
            "roster": "roster-screen",
            "chat": "chat-screen",
            "plugins": "plugin-screen",
            "settings": "settings-screen",
        }

        for name, screen_id in screens.items():
            try:
                screen = self.query_one(f"#{screen_id}")
                screen.display = name == screen_name
            except NoMatches:
                pass

        self._current_screen = screen_name

    def _set_status(self, widget_id: str, markup: str) -> None:
        try:
            self.query_one(f"#{widget_id}", Static).update(markup)
        except NoMatches:
            pass

    async def _start_bridge(self) -> None:
        """Resolve the backend, load settings and subscribe to events."""
        self._set_status("roster-status", "[yellow]Starting backend...[/]")
        try:
            await self.settings_state.load(self.bridge)
            await self.theme_controller.start()
            for channel in ("xmpp.message.received", "xmpp.message.sent"):
                self._unlisteners.append(
                    await self.bridge.listen(channel, self._on_message_event)
                )
            self._unlisteners.append(
                await self.bridge.listen("xmpp.presence.changed", self._on_presence_event)
            )
            self._unlisteners.append(
                await self.bridge.listen("plugin.status.changed", self._on_plugin_event)
            )
        except Exception as e:
            logger.error("Backend startup failed: %s", e)
            self._set_status("roster-status", f"[red]Backend unavailable: {e}[/]")
            return

        self._set_status("roster-status", "")
        await self._refresh_roster()

    # Actions

    def action_go_back(self) -> None:
        """Return to the roster."""
        self._show_screen("roster")

    def action_show_plugins(self) -> None:
        self._show_screen("plugins")

    def action_show_settings(self) -> None:
        self._show_screen("settings")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        button_id = event.button.id

        if button_id == "join-room-btn":
            await self._handle_join_room()
        elif button_id == "send-btn":
            await self._handle_send_message()
        elif button_id == "older-btn":
            await self._load_history(older=True)
        elif button_id == "leave-room-btn":
            await self._handle_leave_room()
        elif button_id == "install-btn":
            await self._handle_install_plugin()
        elif button_id == "update-btn":
            await self._handle_plugin_action("update")
        elif button_id == "uninstall-btn":
            await self._handle_plugin_action("uninstall")
        elif button_id == "theme-light-btn":
            self.settings_state.theme = ThemeChoice.LIGHT
        elif button_id == "theme-dark-btn":
            self.settings_state.theme = ThemeChoice.DARK
        elif button_id == "theme-system-btn":
            self.settings_state.theme = ThemeChoice.SYSTEM
        elif button_id == "os-scheme-btn":
            self.color_scheme.set_dark(not self.color_scheme.prefers_dark())
        elif button_id and button_id.startswith("presence-"):
            await self._handle_set_presence(button_id[len("presence-"):-len("-btn")])

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        input_id = event.input.id

        if input_id == "message-input":
            await self._handle_send_message()
        elif input_id in ("room-jid-input", "room-nick-input"):
            await self._handle_join_room()
        elif input_id == "plugin-ref-input":
            await self._handle_install_plugin()

    async def on_list_view_selected(self, event: ListView.Selected) -> None:
        """Open a conversation or show plugin details."""
        index = event.list_view.index
        if index is None:
            return
        if event.list_view.id == "roster-list" and index < len(self.roster):
            await self._open_conversation(self.roster[index].jid, is_room=False)
        elif event.list_view.id == "plugin-list":
            plugin_ids = sorted(self.plugin_manager.installed)
            if index < len(plugin_ids):
                await self._show_plugin(plugin_ids[index])

    # Roster and conversations

    async def _refresh_roster(self) -> None:
        """Reload the roster from the backend."""
        try:
            self.roster = await self.bridge.get_roster()
        except Exception as e:
            logger.error("Failed to load roster: %s", e)
            self._set_status("roster-status", f"[red]Error: {e}[/]")
            return
        self._render_roster()

    def _render_roster(self) -> None:
        try:
            roster_list = self.query_one("#roster-list", ListView)
        except NoMatches:
            return
        roster_list.clear()
        for item in self.roster:
            roster_list.append(ListItem(Label(format_roster_item(item))))
        if not self.roster:
            self._set_status("roster-status", "[yellow]No contacts yet[/]")

    async def _open_conversation(self, jid: str, is_room: bool) -> None:
        self.current_jid = jid
        self.current_is_room = is_room
        self.messages = []
        try:
            await self.query_one("#messages-container", ScrollableContainer).remove_children()
            leave_btn = self.query_one("#leave-room-btn", Button)
            if is_room:
                leave_btn.remove_class("hidden")
            else:
                leave_btn.add_class("hidden")
        except NoMatches:
            pass
        self._set_status("chat-header", f"[bold]{jid}[/]")
        self._show_screen("chat")
        await self._load_history(older=False)

    async def _load_history(self, older: bool) -> None:
        """Fetch one page of history, older than the first shown message."""
        if not self.current_jid:
            return
        before = self.messages[0].id if older and self.messages else None
        try:
            page = await self.bridge.get_history(
                self.current_jid, HISTORY_PAGE_SIZE, before
            )
        except Exception as e:
            logger.error("Failed to load history: %s", e)
            self._set_status("chat-header", f"[red]History unavailable: {e}[/]")
            return
        if older:
            self.messages = page + self.messages
        else:
            self.messages = page
        await self._render_messages()

    async def _render_messages(self) -> None:
        try:
            container = self.query_one("#messages-container", ScrollableContainer)
        except NoMatches:
            return
        await container.remove_children()
        for message in self.messages:
            own = message.from_jid == self.bridge_config.jid
            await container.mount(MessageDisplay(message, is_own_message=own))
        container.scroll_end(animate=False)

    async def _handle_send_message(self) -> None:
        if not self.current_jid:
            return
        message_input = self.query_one("#message-input", Input)
        body = message_input.value.strip()
        if not body:
            return
        try:
            await self.bridge.send_message(self.current_jid, body)
            message_input.value = ""
        except Exception as e:
            logger.error("Failed to send message: %s", e)
            self._set_status("chat-header", f"[red]Send failed: {e}[/]")

    async def _handle_join_room(self) -> None:
        room_jid = self.query_one("#room-jid-input", Input).value.strip()
        nick = self.query_one("#room-nick-input", Input).value.strip()
        if not room_jid or not nick:
            self._set_status("roster-status", "[red]Enter a room and a nickname[/]")
            return
        try:
            await self.bridge.join_room(room_jid, nick)
        except Exception as e:
            logger.error("Failed to join room: %s", e)
            self._set_status("roster-status", f"[red]Failed to join: {e}[/]")
            return
        self.rooms[room_jid] = nick
        await self._open_conversation(room_jid, is_room=True)

    async def _handle_leave_room(self) -> None:
        if not self.current_jid or not self.current_is_room:
            return
        room_jid = self.current_jid
        try:
            await self.bridge.leave_room(room_jid)
        except Exception as e:
            logger.warning("Failed to leave room %s: %s", room_jid, e)
        self.rooms.pop(room_jid, None)
        self.current_jid = None
        self._show_screen("roster")

    async def _handle_set_presence(self, show: str) -> None:
        try:
            await self.bridge.set_presence(show)
            self._set_status("settings-status", f"[green]Presence: {show}[/]")
        except Exception as e:
            logger.error("Failed to set presence: %s", e)
            self._set_status("settings-status", f"[red]Error: {e}[/]")

    # Plugins

    async def _handle_install_plugin(self) -> None:
        ref_input = self.query_one("#plugin-ref-input", Input)
        reference = ref_input.value.strip()
        if not reference:
            self._set_status("plugin-status", "[red]Enter a plugin reference[/]")
            return
        try:
            info = await self.plugin_manager.install(reference)
        except Exception as e:
            logger.error("Plugin install failed: %s", e)
            self._set_status("plugin-status", f"[red]Error: {e}[/]")
            return
        ref_input.value = ""
        if info.failed:
            self._set_status(
                "plugin-status",
                f"[red]{info.id}: {info.error_reason} "
                f"({info.error_count} error(s))[/]",
            )
        else:
            self._set_status("plugin-status", f"[green]Installed {info.id} {info.version}[/]")
        self._render_plugin_list()
        await self._show_plugin(info.id)

    async def _handle_plugin_action(self, action: str) -> None:
        plugin_id = self.selected_plugin
        if not plugin_id:
            self._set_status("plugin-status", "[red]Select a plugin first[/]")
            return
        try:
            if action == "update":
                info = await self.plugin_manager.update(plugin_id)
            else:
                info = await self.plugin_manager.uninstall(plugin_id)
        except Exception as e:
            logger.error("Plugin %s failed: %s", action, e)
            self._set_status("plugin-status", f"[red]Error: {e}[/]")
            return
        self._set_status("plugin-status", f"{info.id}: {info.status.value}")
        self._render_plugin_list()
        await self._show_plugin(plugin_id)

    def _render_plugin_list(self) -> None:
        try:
            plugin_list = self.query_one("#plugin-list", ListView)
        except NoMatches:
            return
        plugin_list.clear()
        for plugin_id in sorted(self.plugin_manager.installed):
            record = self.plugin_manager.installed[plugin_id]
            plugin_list.append(ListItem(Label(f"{record.name} {record.version}")))

    async def _show_plugin(self, plugin_id: str) -> None:
        """Show plugin details and mount its extension components."""
        self.selected_plugin = plugin_id
        view = await self.plugin_manager.describe(plugin_id)
        self._set_status("plugin-info", format_plugin_view(view))
        try:
            container = self.query_one("#plugin-container", Container)
        except NoMatches:
            return
        await container.remove_children()
        for point in view.extensions:
            factory = EXTENSION_COMPONENTS.get(point.component)
            if factory is not None:
                try:
                    await container.mount(factory(point.plugin_id))
                    continue
                except Exception as e:
                    logger.warning(
                        "Extension %s of plugin %s failed: %s",
                        point.component,
                        point.plugin_id,
                        e,
                    )
            await container.mount(
                Static(f"[dim]{point.component} is not available[/]")
            )

    # Bridge event callbacks

    def _on_surface_changed(self, changed: Dict[str, str]) -> None:
        if self.is_running:
            self.refresh_css(animate=False)

    def _on_message_event(self, event: Event) -> None:
        try:
            ChatMessage.coerce(event.payload)
        except (KeyError, TypeError, AttributeError) as e:
            logger.debug("Ignoring malformed message event: %s", e)
            return
        if self.current_jid and self._current_screen == "chat":
            self.call_later(self._load_history, False)

    def _on_presence_event(self, event: Event) -> None:
        payload = event.payload if isinstance(event.payload, dict) else {}
        jid = payload.get("jid")
        show = payload.get("show")
        if not jid or not show:
            return
        self.roster = [
            item.with_presence(show) if item.jid == jid else item for item in self.roster
        ]
        self.call_later(self._render_roster)

    def _on_plugin_event(self, event: Event) -> None:
        logger.debug("Plugin status changed: %s", event.payload)
        self.call_later(self._render_plugin_list)
