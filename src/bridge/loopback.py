"""
Loopback Engine

An in-process engine with no network connection. It keeps the persisted row
shapes (messages, roster, rooms, plugins) in memory and answers every
command locally, which makes it the default engine for standalone runs,
the demo and the tests.

It follows the engine calling convention: `await WaddleCore.init()`
returns a core with positional async functions and an
`on(channel, callback) -> unsubscribe` primitive delivering bare payloads.

Plugin policy:
    - references are "<id>" or "<id>@<version>"; ids are lowercase words
      joined by hyphens
    - installing an id already installed at the same version returns the
      existing info unchanged; another version is handled as an update
    - a reference that cannot be resolved yields status "error" with the
      error count incremented; it does not raise
    - uninstall/update/get of an unknown id raise CommandError
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import BridgeConfig
from .errors import CommandError
from .events import SubscriptionTable
from .schemas import (
    UNAVAILABLE,
    MessageRow,
    PluginInfo,
    PluginStatus,
    RosterRow,
    UiConfig,
    plugin_action_from_dict,
)

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"^(?P<id>[a-z0-9]+(?:-[a-z0-9]+)*)(?:@(?P<version>[\w.\-]+))?$")
DEFAULT_VERSION = "latest"


@dataclass
class CatalogEntry:
    """
    A plugin known to the loopback catalog.

    Attributes:
        name: Display name
        versions: Available versions, oldest first
        capabilities: Capability tags declared by the plugin
    """

    name: str
    versions: List[str] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)

    @property
    def latest(self) -> Optional[str]:
        return self.versions[-1] if self.versions else None


@dataclass
class RoomRow:
    """Persisted multi-user chat room row."""

    room_jid: str
    nick: str
    joined: bool = False
    subject: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _display_name(plugin_id: str) -> str:
    return " ".join(word.capitalize() for word in plugin_id.split("-"))


class WaddleCore:
    """
    In-memory engine core.

    Attributes:
        jid: Own JID used as sender of outgoing messages
        messages: Message rows in insertion (chronological) order
        roster: Roster rows keyed by JID
        presence: Current presence by JID
        rooms: Room rows keyed by room JID
        plugins: PluginInfo keyed by plugin id
        catalog: Optional catalog; when set, only listed ids resolve
        config: UI preference snapshot
    """

    def __init__(
        self,
        jid: Optional[str] = None,
        catalog: Optional[Dict[str, CatalogEntry]] = None,
        config: Optional[UiConfig] = None,
    ):
        self.jid = jid or BridgeConfig.from_env().jid
        self.messages: List[MessageRow] = []
        self.roster: Dict[str, RosterRow] = {}
        self.presence: Dict[str, str] = {}
        self.rooms: Dict[str, RoomRow] = {}
        self.plugins: Dict[str, PluginInfo] = {}
        self.catalog = catalog
        self.config = config or UiConfig()
        self.own_show = UNAVAILABLE
        self.own_status: Optional[str] = None
        self._subscriptions = SubscriptionTable()

    @classmethod
    async def init(cls, **kwargs: Any) -> "WaddleCore":
        """Create and initialize a core."""
        core = cls(**kwargs)
        logger.info("Loopback engine started for %s", core.jid)
        return core

    # Events

    def on(self, channel: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register a callback for bare payloads; returns unsubscribe."""
        return self._subscriptions.subscribe(channel, callback)

    def emit(self, channel: str, payload: Any) -> int:
        """Emit a payload on a channel, as the host or a plugin would."""
        return self._subscriptions.emit(channel, payload)

    # Seeding (stands in for the storage layer)

    def add_contact(
        self,
        jid: str,
        name: Optional[str] = None,
        subscription: str = "both",
        groups: Optional[List[str]] = None,
        presence: str = UNAVAILABLE,
    ) -> RosterRow:
        row = RosterRow(
            jid=jid,
            name=name,
            subscription=subscription,
            groups=",".join(groups) if groups else None,
        )
        self.roster[jid] = row
        self.presence[jid] = presence
        return row

    def receive_message(
        self, from_jid: str, body: str, timestamp: Optional[str] = None
    ) -> MessageRow:
        """Store an inbound message and emit it."""
        row = MessageRow(
            id=str(uuid.uuid4()),
            from_jid=from_jid,
            to_jid=self.jid,
            body=body,
            timestamp=timestamp or _now(),
        )
        self.messages.append(row)
        self.emit("xmpp.message.received", row.to_chat_message().to_dict())
        return row

    def update_presence(self, jid: str, show: str) -> None:
        self.presence[jid] = show
        self.emit("xmpp.presence.changed", {"jid": jid, "show": show})

    # Commands

    async def send_message(self, to: str, body: str) -> Dict[str, Any]:
        row = MessageRow(
            id=str(uuid.uuid4()),
            from_jid=self.jid,
            to_jid=to,
            body=body,
            timestamp=_now(),
            message_type="groupchat" if to in self.rooms else "chat",
            read=True,
        )
        self.messages.append(row)
        message = row.to_chat_message().to_dict()
        self.emit("xmpp.message.sent", message)
        return message

    async def get_roster(self) -> List[Dict[str, Any]]:
        return [
            row.to_roster_item(self.presence.get(jid, UNAVAILABLE)).to_dict()
            for jid, row in self.roster.items()
        ]

    async def set_presence(self, show: str, status: Optional[str] = None) -> None:
        self.own_show = show
        self.own_status = status
        self.emit("xmpp.presence.changed", {"jid": self.jid, "show": show, "status": status})

    async def join_room(self, room_jid: str, nick: str) -> None:
        self.rooms[room_jid] = RoomRow(room_jid=room_jid, nick=nick, joined=True)
        self.emit("xmpp.muc.joined", {"roomJid": room_jid, "nick": nick})

    async def leave_room(self, room_jid: str) -> None:
        room = self.rooms.pop(room_jid, None)
        if room is None:
            raise CommandError("leave_room", f"not in room {room_jid}")
        self.emit("xmpp.muc.left", {"roomJid": room_jid, "nick": room.nick})

    async def get_history(
        self, jid: str, limit: int, before: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Return up to `limit` messages exchanged with `jid`, oldest first.

        With `before` (a message id), only messages stored before that
        message are considered.
        """
        rows = self.messages
        if before is not None:
            position = next(
                (index for index, row in enumerate(rows) if row.id == before), None
            )
            if position is None:
                raise CommandError("get_history", f"unknown cursor {before}")
            rows = rows[:position]
        matching = [row for row in rows if row.involves(jid)]
        page = matching[-limit:] if limit > 0 else []
        return [row.to_chat_message().to_dict() for row in page]

    async def manage_plugins(self, action: Dict[str, Any]) -> Dict[str, Any]:
        try:
            request = plugin_action_from_dict(action)
        except ValueError as e:
            raise CommandError("manage_plugins", str(e)) from e

        tag = action["action"]
        if tag == "install":
            info = self._install(request.reference)
        elif tag == "update":
            info = self._update(self._require(request.plugin_id))
        elif tag == "uninstall":
            info = self._uninstall(self._require(request.plugin_id))
        else:
            info = self._require(request.plugin_id)
            return info.to_dict()

        self.emit("plugin.status.changed", info.to_dict())
        return info.to_dict()

    async def get_config(self) -> Dict[str, Any]:
        return self.config.to_dict()

    async def close(self) -> None:
        self._subscriptions.clear()

    # Plugin registry

    def _require(self, plugin_id: str) -> PluginInfo:
        info = self.plugins.get(plugin_id)
        if info is None:
            raise CommandError("manage_plugins", f"plugin {plugin_id} not installed")
        return info

    def _install(self, reference: str) -> PluginInfo:
        match = _REFERENCE.match(reference.strip())
        if match is None:
            return self._fail(
                reference, reference, f"invalid reference {reference!r}", store=False
            )

        plugin_id = match.group("id")
        entry = self._catalog_entry(plugin_id)
        if entry is None:
            return self._fail(
                plugin_id, reference, f"failed to resolve reference {reference}"
            )

        version = match.group("version") or entry.latest or DEFAULT_VERSION
        if entry.versions and version not in entry.versions:
            return self._fail(
                plugin_id, reference, f"version {version} not available for {plugin_id}"
            )

        existing = self.plugins.get(plugin_id)
        if (
            existing is not None
            and existing.status is PluginStatus.ACTIVE
            and existing.version == version
        ):
            return existing
        return self._activate(plugin_id, entry, version)

    def _update(self, info: PluginInfo) -> PluginInfo:
        entry = self._catalog_entry(info.id)
        if entry is None:
            return self._fail(info.id, info.id, f"failed to resolve reference {info.id}")
        return self._activate(info.id, entry, entry.latest or info.version)

    def _uninstall(self, info: PluginInfo) -> PluginInfo:
        del self.plugins[info.id]
        return PluginInfo(
            id=info.id,
            name=info.name,
            version=info.version,
            status=PluginStatus.REMOVED,
            error_count=info.error_count,
            capabilities=info.capabilities,
        )

    def _activate(self, plugin_id: str, entry: CatalogEntry, version: str) -> PluginInfo:
        previous = self.plugins.get(plugin_id)
        info = PluginInfo(
            id=plugin_id,
            name=entry.name,
            version=version,
            status=PluginStatus.ACTIVE,
            error_reason=None,
            error_count=previous.error_count if previous else 0,
            capabilities=list(entry.capabilities),
        )
        self.plugins[plugin_id] = info
        logger.info("Plugin %s active at %s", plugin_id, version)
        return info

    def _fail(
        self, plugin_id: str, reference: str, reason: str, store: bool = True
    ) -> PluginInfo:
        previous = self.plugins.get(plugin_id)
        info = PluginInfo(
            id=plugin_id,
            name=previous.name if previous else _display_name(plugin_id),
            version=previous.version if previous else "",
            status=PluginStatus.ERROR,
            error_reason=reason,
            error_count=(previous.error_count if previous else 0) + 1,
            capabilities=previous.capabilities if previous else [],
        )
        if store:
            self.plugins[plugin_id] = info
        logger.warning("Plugin operation on %s failed: %s", reference, reason)
        return info

    def _catalog_entry(self, plugin_id: str) -> Optional[CatalogEntry]:
        if self.catalog is None:
            return CatalogEntry(name=_display_name(plugin_id))
        return self.catalog.get(plugin_id)
