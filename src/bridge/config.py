"""
Bridge Configuration

Settings are read from environment variables so the same code runs
unmodified under the desktop host (which exports WADDLE_BRIDGE_URL) and
standalone with the in-process engine.

Environment:
    WADDLE_BRIDGE_URL: WebSocket URL of the native bridge (marker)
    WADDLE_ENGINE_MODULE: Module providing WaddleCore (in-process engine)
    WADDLE_COLOR_SCHEME: Initial OS color scheme, "light" or "dark"
    WADDLE_LOG_LEVEL: Logging level name for the shell
    WADDLE_LOG_FILE: Log file written by the shell
    WADDLE_JID: Own JID used by the loopback engine
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_ENGINE_MODULE = "bridge.loopback"
DEFAULT_LOG_FILE = "waddle_shell.log"
DEFAULT_JID = "me@localhost"


@dataclass
class BridgeConfig:
    """
    Runtime configuration for the bridge and the shell.

    Attributes:
        bridge_url: Native bridge URL, None when no desktop host is present
        engine_module: Importable name of the in-process engine module
        color_scheme: Initial OS color scheme ("light" or "dark")
        log_level: Logging level name
        log_file: Path of the shell log file
        jid: Own JID for the loopback engine
    """

    bridge_url: Optional[str] = None
    engine_module: str = DEFAULT_ENGINE_MODULE
    color_scheme: str = "light"
    log_level: str = "WARNING"
    log_file: str = DEFAULT_LOG_FILE
    jid: str = DEFAULT_JID

    @property
    def has_native_bridge(self) -> bool:
        """True when the desktop host announced its bridge."""
        return bool(self.bridge_url)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            BridgeConfig populated from the environment
        """
        env = os.environ if environ is None else environ
        color_scheme = env.get("WADDLE_COLOR_SCHEME", "light").strip().lower()
        if color_scheme not in ("light", "dark"):
            color_scheme = "light"
        return cls(
            bridge_url=env.get("WADDLE_BRIDGE_URL") or None,
            engine_module=env.get("WADDLE_ENGINE_MODULE", DEFAULT_ENGINE_MODULE),
            color_scheme=color_scheme,
            log_level=env.get("WADDLE_LOG_LEVEL", "WARNING").upper(),
            log_file=env.get("WADDLE_LOG_FILE", DEFAULT_LOG_FILE),
            jid=env.get("WADDLE_JID", DEFAULT_JID),
        )
