"""
Bridge Errors

Exceptions raised by the runtime bridge. Only initialization and command
failures are surfaced to callers; plugin failures are reported as data on
the returned PluginInfo, and transport loss uses the builtin
ConnectionError.
"""


class BridgeError(Exception):
    """Base class for all errors raised by the bridge."""


class BackendInitError(BridgeError):
    """
    The backend could not be created or initialized.

    Raised once by the resolver and cached; every caller of the resolver
    observes this same exception instance.
    """


class CommandError(BridgeError):
    """
    A backend operation rejected.

    Attributes:
        command: Name of the backend command (e.g., "send_message")
        reason: Reason reported by the backend
    """

    def __init__(self, command: str, reason: str):
        super().__init__(f"{command} failed: {reason}")
        self.command = command
        self.reason = reason
