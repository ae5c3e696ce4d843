"""
Backend Interface

The contract both backends satisfy. Exactly one implementation is created
per process by the resolver; callers only ever see this interface.
"""

from typing import List, Optional, Protocol, runtime_checkable

from ..events import EventCallback, UnlistenFn
from ..schemas import (
    AnyPluginAction,
    ChatMessage,
    PluginInfo,
    RosterItem,
    UiConfig,
)


@runtime_checkable
class Backend(Protocol):
    """Asynchronous command/event interface of a chat backend."""

    name: str

    async def send_message(self, to: str, body: str) -> ChatMessage: ...

    async def get_roster(self) -> List[RosterItem]: ...

    async def set_presence(self, show: str, status: Optional[str] = None) -> None: ...

    async def join_room(self, room_jid: str, nick: str) -> None: ...

    async def leave_room(self, room_jid: str) -> None: ...

    async def get_history(
        self, jid: str, limit: int, before: Optional[str] = None
    ) -> List[ChatMessage]: ...

    async def manage_plugins(self, action: AnyPluginAction) -> PluginInfo: ...

    async def get_config(self) -> UiConfig: ...

    async def listen(self, channel: str, callback: EventCallback) -> UnlistenFn: ...

    async def close(self) -> None: ...
