"""
Native Bridge Backend

This module provides the backend used inside the desktop host. The host
exposes a message-passing bridge over a WebSocket; commands are invoked by
name with a keyed-argument record and events are pushed on named channels.

Message Format:
    All frames are JSON objects of the form {"type": ..., "data": {...}}

    invoke         client -> host  {"id", "command", "args"}
    invoke_result  host -> client  {"id", "ok", "result" | "error"}
    listen         client -> host  {"channel"}
    unlisten       client -> host  {"channel"}
    event          host -> client  {"channel", "payload"}

Architecture:
    - Supports dependency injection for the network layer (for testability)
    - A background reader task correlates replies with pending calls by id
      and routes event frames to subscribers
    - No per-call timeout: a call the host never answers stays pending until
      the connection closes
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Set

import websockets

from ..errors import CommandError
from ..events import EventCallback, SubscriptionTable, UnlistenFn, envelope_callback
from ..schemas import (
    AnyPluginAction,
    ChatMessage,
    PluginInfo,
    RosterItem,
    UiConfig,
)

logger = logging.getLogger(__name__)


class NativeBackend:
    """
    Backend talking to the desktop host's message-passing bridge.

    Attributes:
        bridge_url: WebSocket URL of the host bridge
        websocket: Active WebSocket connection (None if not connected)
    """

    name = "native"

    def __init__(
        self,
        bridge_url: str,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the native backend.

        Args:
            bridge_url: WebSocket URL of the host bridge
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.bridge_url = bridge_url
        self.websocket: Any = None
        self._websocket_factory = websocket_factory or websockets.connect
        self._connected = False
        self._request_ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._control_tasks: Set[asyncio.Task] = set()
        self._subscriptions = SubscriptionTable(
            on_first_subscriber=self._on_first_subscriber,
            on_last_unsubscribed=self._on_last_unsubscribed,
        )

        logger.info("NativeBackend initialized for bridge: %s", bridge_url)

    async def connect(self) -> None:
        """
        Establish the WebSocket connection and start the reader task.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            logger.info("Connecting to native bridge %s...", self.bridge_url)
            self.websocket = await self._websocket_factory(self.bridge_url)
        except Exception as e:
            logger.error("Failed to connect to native bridge: %s", e)
            raise ConnectionError(
                f"Could not connect to {self.bridge_url}: {e}"
            ) from e
        self._connected = True
        self._reader_task = asyncio.create_task(self._read_frames())
        logger.info("Connected to native bridge")

    async def close(self) -> None:
        """Close the connection and reject any pending calls."""
        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        if self.websocket is not None:
            # Only close if it's a real WebSocket connection
            if hasattr(self.websocket, "close"):
                await self.websocket.close()
            self.websocket = None
        self._connected = False
        self._fail_pending(ConnectionError("Native bridge closed"))
        self._subscriptions.clear()
        logger.info("Disconnected from native bridge")

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the host bridge."""
        return self._connected and self.websocket is not None

    async def invoke(self, command: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Invoke a named host command and wait for its reply.

        Args:
            command: Command name (e.g., "send_message")
            args: Keyed arguments named after the command's parameters

        Returns:
            The "result" value of the reply

        Raises:
            ConnectionError: If not connected or the connection drops
            CommandError: If the host reports a failure
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to the native bridge")

        request_id = next(self._request_ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        frame = {
            "type": "invoke",
            "data": {"id": request_id, "command": command, "args": args or {}},
        }
        logger.debug("Invoking %s (id=%s)", command, request_id)
        try:
            await self.websocket.send(json.dumps(frame))
            reply = await future
        finally:
            self._pending.pop(request_id, None)

        if not reply.get("ok", False):
            raise CommandError(command, str(reply.get("error", "Unknown error")))
        return reply.get("result")

    # Commands

    async def send_message(self, to: str, body: str) -> ChatMessage:
        result = await self.invoke("send_message", {"to": to, "body": body})
        return ChatMessage.coerce(result)

    async def get_roster(self) -> List[RosterItem]:
        result = await self.invoke("get_roster")
        return [RosterItem.coerce(item) for item in result or []]

    async def set_presence(self, show: str, status: Optional[str] = None) -> None:
        await self.invoke("set_presence", {"show": show, "status": status})

    async def join_room(self, room_jid: str, nick: str) -> None:
        await self.invoke("join_room", {"roomJid": room_jid, "nick": nick})

    async def leave_room(self, room_jid: str) -> None:
        await self.invoke("leave_room", {"roomJid": room_jid})

    async def get_history(
        self, jid: str, limit: int, before: Optional[str] = None
    ) -> List[ChatMessage]:
        result = await self.invoke(
            "get_history", {"jid": jid, "limit": limit, "before": before}
        )
        return [ChatMessage.coerce(item) for item in result or []]

    async def manage_plugins(self, action: AnyPluginAction) -> PluginInfo:
        result = await self.invoke("manage_plugins", {"action": action.to_dict()})
        return PluginInfo.coerce(result)

    async def get_config(self) -> UiConfig:
        result = await self.invoke("get_config")
        return UiConfig.coerce(result or {})

    async def listen(self, channel: str, callback: EventCallback) -> UnlistenFn:
        """
        Subscribe to a host event channel.

        The host delivers bare payloads; they are wrapped into an Event
        envelope before reaching `callback`.
        """
        return self._subscriptions.subscribe(channel, envelope_callback(callback))

    # Frame handling

    async def _read_frames(self) -> None:
        """Receive frames until the connection closes."""
        try:
            async for raw in self.websocket:
                self._process_frame(raw)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Connection closed by native bridge")
        finally:
            self._connected = False
            self._fail_pending(ConnectionError("Native bridge connection lost"))

    def _process_frame(self, raw: str) -> None:
        """
        Route one incoming frame.

        Args:
            raw: Raw JSON frame from the WebSocket
        """
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse bridge frame: %s", e)
            return

        frame_type = frame.get("type")
        data = frame.get("data", {})

        if frame_type == "invoke_result":
            future = self._pending.get(data.get("id"))
            if future is None:
                logger.debug("Reply for unknown request id %s", data.get("id"))
            elif not future.done():
                future.set_result(data)
        elif frame_type == "event":
            channel = data.get("channel")
            delivered = self._subscriptions.emit(channel, data.get("payload"))
            logger.debug("Event on '%s' delivered to %d subscriber(s)", channel, delivered)
        else:
            logger.debug("Unhandled frame type: %s", frame_type)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    def _on_first_subscriber(self, channel: str) -> None:
        self._send_control("listen", channel)

    def _on_last_unsubscribed(self, channel: str) -> None:
        self._send_control("unlisten", channel)

    def _send_control(self, frame_type: str, channel: str) -> None:
        """Send a listen/unlisten frame without blocking the caller."""
        if not self.is_connected:
            return
        frame = json.dumps({"type": frame_type, "data": {"channel": channel}})
        task = asyncio.ensure_future(self.websocket.send(frame))
        self._control_tasks.add(task)
        task.add_done_callback(self._control_tasks.discard)

    def _set_test_mode(self, mock_websocket: object = None) -> None:
        """
        Set the backend in test mode with a mock connection.

        This bypasses the WebSocket factory; no reader task is started, so
        tests feed frames through `_process_frame`.

        Args:
            mock_websocket: Required mock websocket object with send

        Raises:
            ValueError: If mock_websocket is not provided
        """
        if mock_websocket is None:
            raise ValueError("_set_test_mode requires a mock_websocket object")
        self._connected = True
        self.websocket = mock_websocket
