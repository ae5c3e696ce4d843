"""
In-Process Engine Backend

This module adapts an engine module loaded into the current process. The
module exposes `WaddleCore.init()`, an awaitable returning a core object
with one asynchronous function per command (positional arguments) and an
`on(channel, callback) -> unsubscribe` registration primitive that
delivers bare payloads.
"""

import importlib
import logging
from typing import Any, List, Optional

from ..events import EventCallback, UnlistenFn, envelope_callback, once
from ..schemas import (
    AnyPluginAction,
    ChatMessage,
    PluginInfo,
    RosterItem,
    UiConfig,
)

logger = logging.getLogger(__name__)


async def load_engine(module_name: str) -> Any:
    """
    Import an engine module and initialize its core.

    Args:
        module_name: Importable module name providing WaddleCore

    Returns:
        The initialized engine core

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the module has no WaddleCore
        Exception: Whatever WaddleCore.init() raises
    """
    logger.info("Loading in-process engine '%s'", module_name)
    module = importlib.import_module(module_name)
    core = await module.WaddleCore.init()
    logger.info("In-process engine '%s' initialized", module_name)
    return core


class EngineBackend:
    """
    Backend calling an in-process engine core directly.

    Attributes:
        core: The initialized engine core
    """

    name = "engine"

    def __init__(self, core: Any):
        self.core = core

    async def send_message(self, to: str, body: str) -> ChatMessage:
        return ChatMessage.coerce(await self.core.send_message(to, body))

    async def get_roster(self) -> List[RosterItem]:
        items = await self.core.get_roster()
        return [RosterItem.coerce(item) for item in items or []]

    async def set_presence(self, show: str, status: Optional[str] = None) -> None:
        await self.core.set_presence(show, status)

    async def join_room(self, room_jid: str, nick: str) -> None:
        await self.core.join_room(room_jid, nick)

    async def leave_room(self, room_jid: str) -> None:
        await self.core.leave_room(room_jid)

    async def get_history(
        self, jid: str, limit: int, before: Optional[str] = None
    ) -> List[ChatMessage]:
        messages = await self.core.get_history(jid, limit, before)
        return [ChatMessage.coerce(message) for message in messages or []]

    async def manage_plugins(self, action: AnyPluginAction) -> PluginInfo:
        return PluginInfo.coerce(await self.core.manage_plugins(action.to_dict()))

    async def get_config(self) -> UiConfig:
        return UiConfig.coerce(await self.core.get_config() or {})

    async def listen(self, channel: str, callback: EventCallback) -> UnlistenFn:
        """
        Subscribe through the engine's `on` primitive.

        The engine delivers bare payloads; they are wrapped into an Event
        envelope. The engine's unsubscribe is made idempotent.
        """
        unsubscribe = self.core.on(channel, envelope_callback(callback))
        return once(unsubscribe)

    async def close(self) -> None:
        close = getattr(self.core, "close", None)
        if close is not None:
            await close()
