"""
Tests for the In-Process Engine Backend

Tests positional calling, result decoding and event envelope wrapping
against a fake engine core.
"""

import pytest

from bridge import Get, Install
from bridge.backends import EngineBackend, load_engine


class FakeCore:
    """Engine core recording calls and subscriptions."""

    def __init__(self):
        self.calls = []
        self.callbacks = {}
        self.unsubscribed = 0

    async def send_message(self, to, body):
        self.calls.append(("send_message", to, body))
        return {"id": "m1", "from": "me@localhost", "body": body, "sentAt": "t"}

    async def get_roster(self):
        return [{"jid": "alice@example.org", "name": "Alice", "presence": "away"}]

    async def get_history(self, jid, limit, before):
        self.calls.append(("get_history", jid, limit, before))
        return []

    async def manage_plugins(self, action):
        self.calls.append(("manage_plugins", action))
        return {"id": "echo-bot", "name": "Echo Bot", "version": "1.0", "status": "active"}

    async def get_config(self):
        return None

    def on(self, channel, callback):
        self.callbacks.setdefault(channel, []).append(callback)

        def unsubscribe():
            self.unsubscribed += 1
            self.callbacks[channel].remove(callback)

        return unsubscribe


@pytest.mark.asyncio
async def test_commands_are_called_positionally():
    """Test that arguments reach the core positionally."""
    core = FakeCore()
    backend = EngineBackend(core)

    message = await backend.send_message("alice@example.org", "hi")
    await backend.get_history("alice@example.org", 10)

    assert core.calls == [
        ("send_message", "alice@example.org", "hi"),
        ("get_history", "alice@example.org", 10, None),
    ]
    assert message.from_jid == "me@localhost"


@pytest.mark.asyncio
async def test_results_are_decoded():
    """Test that roster and config results are decoded into records."""
    backend = EngineBackend(FakeCore())

    roster = await backend.get_roster()
    config = await backend.get_config()

    assert roster[0].jid == "alice@example.org"
    assert roster[0].presence == "away"
    assert roster[0].group == ""
    assert config.theme == "system"


@pytest.mark.asyncio
async def test_plugin_actions_are_passed_as_dicts():
    """Test that plugin actions reach the core in wire form."""
    core = FakeCore()
    backend = EngineBackend(core)

    await backend.manage_plugins(Install("echo-bot@1.0"))
    await backend.manage_plugins(Get("echo-bot"))

    assert core.calls == [
        ("manage_plugins", {"action": "install", "reference": "echo-bot@1.0"}),
        ("manage_plugins", {"action": "get", "pluginId": "echo-bot"}),
    ]


@pytest.mark.asyncio
async def test_bare_payloads_are_wrapped():
    """Test that engine payloads arrive as Event envelopes."""
    core = FakeCore()
    backend = EngineBackend(core)
    received = []

    await backend.listen("ui.theme.changed", received.append)
    for callback in core.callbacks["ui.theme.changed"]:
        callback({"name": "dark"})

    assert received[0].payload == {"name": "dark"}


@pytest.mark.asyncio
async def test_unlisten_is_idempotent():
    """Test that the engine's unsubscribe runs only once."""
    core = FakeCore()
    backend = EngineBackend(core)

    unlisten = await backend.listen("xmpp.message.received", lambda event: None)
    unlisten()
    unlisten()

    assert core.unsubscribed == 1


@pytest.mark.asyncio
async def test_load_engine_imports_loopback():
    """Test that load_engine initializes WaddleCore from a module."""
    core = await load_engine("bridge.loopback")
    assert core.messages == []


@pytest.mark.asyncio
async def test_load_engine_missing_module():
    """Test that a missing engine module raises ImportError."""
    with pytest.raises(ImportError):
        await load_engine("bridge.no_such_engine")


@pytest.mark.asyncio
async def test_loading_status_is_returned_as_data():
    """Test that a plugin still loading is reported, not raised."""

    class LoadingCore(FakeCore):
        async def manage_plugins(self, action):
            return {
                "id": "echo-bot",
                "name": "Echo Bot",
                "version": "1.0",
                "status": "loading",
            }

    backend = EngineBackend(LoadingCore())

    info = await backend.manage_plugins(Get("echo-bot"))

    assert info.status.value == "loading"
    assert info.error_reason is None
