"""
Bridge Service

This module provides the command dispatch facade used by every caller. Each
method awaits backend resolution, forwards its arguments to the backend and
returns the backend's result unmodified.

Architecture:
    - Backend-agnostic: the backend adapters own the calling conventions
    - Supports dependency injection of the resolver (for testability)
    - No retries, no caching, no validation: a backend rejection propagates
      to the caller as raised
"""

import logging
from typing import List, Optional

from .events import EventCallback, UnlistenFn
from .runtime import BackendResolver, get_default_resolver
from .schemas import (
    AnyPluginAction,
    ChatMessage,
    PluginInfo,
    RosterItem,
    UiConfig,
)

logger = logging.getLogger(__name__)


class BridgeService:
    """
    Uniform asynchronous API over whichever backend is present.

    Attributes:
        resolver: Resolver providing the backend
    """

    def __init__(self, resolver: Optional[BackendResolver] = None):
        """
        Initialize the bridge service.

        Args:
            resolver: Optional resolver; defaults to the process-wide one
        """
        self.resolver = resolver or get_default_resolver()

    @property
    def ready(self) -> bool:
        """True once the backend has been resolved successfully."""
        return self.resolver.ready

    async def send_message(self, to: str, body: str) -> ChatMessage:
        """
        Send a chat message.

        Args:
            to: Recipient JID (contact or room)
            body: Message text

        Returns:
            The ChatMessage created by the backend
        """
        backend = await self.resolver.resolve()
        logger.debug("send_message to %s", to)
        return await backend.send_message(to, body)

    async def get_roster(self) -> List[RosterItem]:
        """Fetch the roster."""
        backend = await self.resolver.resolve()
        return await backend.get_roster()

    async def set_presence(self, show: str, status: Optional[str] = None) -> None:
        """
        Set own presence.

        Args:
            show: Presence show value (e.g., "available", "away", "dnd")
            status: Optional free-text status
        """
        backend = await self.resolver.resolve()
        await backend.set_presence(show, status)

    async def join_room(self, room_jid: str, nick: str) -> None:
        """Join a multi-user chat room under a nickname."""
        backend = await self.resolver.resolve()
        logger.info("Joining room %s as %s", room_jid, nick)
        await backend.join_room(room_jid, nick)

    async def leave_room(self, room_jid: str) -> None:
        """Leave a multi-user chat room."""
        backend = await self.resolver.resolve()
        logger.info("Leaving room %s", room_jid)
        await backend.leave_room(room_jid)

    async def get_history(
        self, jid: str, limit: int, before: Optional[str] = None
    ) -> List[ChatMessage]:
        """
        Fetch one page of conversation history.

        Args:
            jid: Contact or room JID
            limit: Maximum number of messages to return
            before: Optional message id; only older messages are returned

        Returns:
            Messages in chronological order
        """
        backend = await self.resolver.resolve()
        return await backend.get_history(jid, limit, before)

    async def manage_plugins(self, action: AnyPluginAction) -> PluginInfo:
        """
        Run one plugin action (install, uninstall, update or get).

        Returns:
            PluginInfo describing the plugin after the action
        """
        backend = await self.resolver.resolve()
        logger.info("Plugin action: %s", action.to_dict())
        return await backend.manage_plugins(action)

    async def get_config(self) -> UiConfig:
        """Fetch the backend-held UI preferences."""
        backend = await self.resolver.resolve()
        return await backend.get_config()

    async def listen(self, channel: str, callback: EventCallback) -> UnlistenFn:
        """
        Subscribe to an event channel.

        Args:
            channel: Channel name (e.g., "ui.theme.changed")
            callback: Called with an Event envelope for each emission

        Returns:
            UnlistenFn cancelling this subscription
        """
        backend = await self.resolver.resolve()
        return await backend.listen(channel, callback)

    async def close(self) -> None:
        """Close the resolved backend."""
        await self.resolver.close()
