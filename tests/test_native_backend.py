"""
Tests for the Native Bridge Backend

Tests the invoke/reply frame protocol, argument naming, error replies and
the listen/unlisten control frames, using a mock WebSocket.
"""

import asyncio
import json

import pytest

from bridge import CommandError, Install
from bridge.backends import NativeBackend


class MockWebSocket:
    """Mock WebSocket answering invoke frames through the backend."""

    def __init__(self, backend=None, replies=None):
        self.backend = backend
        self.replies = replies or {}
        self.sent_messages = []

    async def send(self, message):
        self.sent_messages.append(json.loads(message))
        frame = json.loads(message)
        if frame["type"] != "invoke" or self.backend is None:
            return
        data = frame["data"]
        reply = self.replies.get(data["command"], {"ok": True, "result": None})
        reply = dict(reply, id=data["id"])
        asyncio.get_running_loop().call_soon(
            self.backend._process_frame,
            json.dumps({"type": "invoke_result", "data": reply}),
        )

    def frames(self, frame_type):
        return [frame["data"] for frame in self.sent_messages if frame["type"] == frame_type]


def make_backend(replies=None):
    backend = NativeBackend(bridge_url="ws://localhost:8765")
    mock_ws = MockWebSocket(backend, replies)
    backend._set_test_mode(mock_websocket=mock_ws)
    return backend, mock_ws


def test_native_backend_can_be_instantiated():
    """Test that NativeBackend starts disconnected."""
    backend = NativeBackend(bridge_url="ws://localhost:8765")
    assert backend.bridge_url == "ws://localhost:8765"
    assert not backend.is_connected


def test_set_test_mode_requires_mock():
    """Test that test mode needs a mock websocket."""
    backend = NativeBackend(bridge_url="ws://localhost:8765")
    with pytest.raises(ValueError):
        backend._set_test_mode()


@pytest.mark.asyncio
async def test_invoke_not_connected():
    """Test that invoking without a connection raises ConnectionError."""
    backend = NativeBackend(bridge_url="ws://localhost:8765")
    with pytest.raises(ConnectionError):
        await backend.get_roster()


@pytest.mark.asyncio
async def test_connect_failure_raises_connection_error():
    """Test that a failing factory surfaces as ConnectionError."""

    async def failing_factory(url):
        raise OSError("refused")

    backend = NativeBackend("ws://localhost:1", websocket_factory=failing_factory)
    with pytest.raises(ConnectionError):
        await backend.connect()
    assert not backend.is_connected


@pytest.mark.asyncio
async def test_send_message_frame_and_result():
    """Test the invoke frame and the decoded reply of send_message."""
    backend, mock_ws = make_backend(
        {
            "send_message": {
                "ok": True,
                "result": {
                    "id": "m1",
                    "from": "me@localhost",
                    "body": "hi",
                    "sentAt": "2024-01-01T10:00:00+00:00",
                },
            }
        }
    )

    message = await backend.send_message("alice@example.org", "hi")

    invoke = mock_ws.frames("invoke")[0]
    assert invoke["command"] == "send_message"
    assert invoke["args"] == {"to": "alice@example.org", "body": "hi"}
    assert message.id == "m1"
    assert message.from_jid == "me@localhost"
    assert message.sent_at == "2024-01-01T10:00:00+00:00"


@pytest.mark.asyncio
async def test_arguments_use_camel_case_names():
    """Test that keyed arguments follow the host's camelCase naming."""
    backend, mock_ws = make_backend()

    await backend.join_room("room@conference.example.org", "me")
    await backend.leave_room("room@conference.example.org")
    await backend.get_history("alice@example.org", 25, "m3")

    args = [frame["args"] for frame in mock_ws.frames("invoke")]
    assert args[0] == {"roomJid": "room@conference.example.org", "nick": "me"}
    assert args[1] == {"roomJid": "room@conference.example.org"}
    assert args[2] == {"jid": "alice@example.org", "limit": 25, "before": "m3"}


@pytest.mark.asyncio
async def test_manage_plugins_sends_tagged_action():
    """Test that plugin actions are sent as tagged records."""
    backend, mock_ws = make_backend(
        {
            "manage_plugins": {
                "ok": True,
                "result": {
                    "id": "echo-bot",
                    "name": "Echo Bot",
                    "version": "1.0",
                    "status": "active",
                    "errorReason": None,
                    "errorCount": 0,
                    "capabilities": ["gui-metadata"],
                },
            }
        }
    )

    info = await backend.manage_plugins(Install("echo-bot@1.0"))

    invoke = mock_ws.frames("invoke")[0]
    assert invoke["args"] == {
        "action": {"action": "install", "reference": "echo-bot@1.0"}
    }
    assert info.status.value == "active"
    assert info.capabilities == ["gui-metadata"]


@pytest.mark.asyncio
async def test_error_reply_raises_command_error():
    """Test that an error reply is raised as CommandError."""
    backend, _ = make_backend(
        {"leave_room": {"ok": False, "error": "not in room"}}
    )

    with pytest.raises(CommandError) as exc_info:
        await backend.leave_room("room@conference.example.org")

    assert exc_info.value.command == "leave_room"
    assert "not in room" in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_config_decodes_preferences():
    """Test that get_config decodes camelCase preference keys."""
    backend, _ = make_backend(
        {
            "get_config": {
                "ok": True,
                "result": {"theme": "dark", "themeName": "nord", "notifications": False},
            }
        }
    )

    config = await backend.get_config()

    assert config.theme == "dark"
    assert config.theme_name == "nord"
    assert config.notifications is False


@pytest.mark.asyncio
async def test_event_frames_are_delivered_as_envelopes():
    """Test that bare event payloads reach callbacks as Event envelopes."""
    backend, _ = make_backend()
    received = []

    await backend.listen("ui.theme.changed", received.append)
    backend._process_frame(
        json.dumps(
            {
                "type": "event",
                "data": {"channel": "ui.theme.changed", "payload": {"name": "dark"}},
            }
        )
    )

    assert len(received) == 1
    assert received[0].payload == {"name": "dark"}


@pytest.mark.asyncio
async def test_listen_sends_one_frame_per_channel():
    """Test that only the first subscriber of a channel sends a listen frame."""
    backend, mock_ws = make_backend()

    first = await backend.listen("xmpp.message.received", lambda event: None)
    second = await backend.listen("xmpp.message.received", lambda event: None)
    await asyncio.sleep(0)

    assert mock_ws.frames("listen") == [{"channel": "xmpp.message.received"}]

    first()
    await asyncio.sleep(0)
    assert mock_ws.frames("unlisten") == []

    second()
    second()
    await asyncio.sleep(0)
    assert mock_ws.frames("unlisten") == [{"channel": "xmpp.message.received"}]


@pytest.mark.asyncio
async def test_unlisten_before_event_prevents_delivery():
    """Test that a cancelled subscription sees no later events."""
    backend, _ = make_backend()
    received = []

    unlisten = await backend.listen("plugin.status.changed", received.append)
    unlisten()
    backend._process_frame(
        json.dumps(
            {"type": "event", "data": {"channel": "plugin.status.changed", "payload": {}}}
        )
    )

    assert received == []


@pytest.mark.asyncio
async def test_invalid_frame_is_ignored():
    """Test that malformed JSON does not raise."""
    backend, _ = make_backend()
    backend._process_frame("not json")


@pytest.mark.asyncio
async def test_close_fails_pending_calls():
    """Test that closing rejects calls still waiting for a reply."""
    backend = NativeBackend(bridge_url="ws://localhost:8765")
    mock_ws = MockWebSocket()
    backend._set_test_mode(mock_websocket=mock_ws)

    pending = asyncio.ensure_future(backend.get_roster())
    await asyncio.sleep(0)
    await backend.close()

    with pytest.raises(ConnectionError):
        await pending
    assert not backend.is_connected
