"""
Backend Detector & Singleton Initializer

Decides which backend is present and initializes it exactly once.

Lifecycle:
    - The first `resolve()` call probes the configuration for the native
      bridge marker (WADDLE_BRIDGE_URL). If present, a NativeBackend is
      created and connected; otherwise the in-process engine module is
      imported and initialized.
    - The initialization itself is stored as a single task, created before
      the first await, so concurrent callers during startup attach to the
      same attempt and observe the same backend or the same exception.
    - `ready` becomes True only after a successful resolution.
    - A failed attempt stays cached. There is no retry and no fallback to
      the other backend; `reset()` is the only way to start over.

The process-wide resolver is owned by this module (`get_default_resolver`);
`reset_backend()` is the documented reset for tests and shutdown.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .backends.base import Backend
from .backends.engine import EngineBackend, load_engine
from .backends.native import NativeBackend
from .config import BridgeConfig
from .errors import BackendInitError

logger = logging.getLogger(__name__)

EngineLoader = Callable[[str], Awaitable[Any]]
NativeFactory = Callable[[str], NativeBackend]


class BackendResolver:
    """
    Memoized backend resolution.

    Attributes:
        config: Configuration probed for the native bridge marker
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        native_factory: Optional[NativeFactory] = None,
        engine_loader: Optional[EngineLoader] = None,
    ):
        """
        Initialize the resolver.

        Args:
            config: Bridge configuration (defaults to the environment)
            native_factory: Optional factory building the native backend
                            from the bridge URL (for testing)
            engine_loader: Optional coroutine function returning an engine
                           core for a module name (for testing)
        """
        self.config = config or BridgeConfig.from_env()
        self._native_factory = native_factory or NativeBackend
        self._engine_loader = engine_loader or load_engine
        self._task: Optional[asyncio.Task] = None
        self._backend: Optional[Backend] = None
        self._ready = False

    @property
    def ready(self) -> bool:
        """True once a backend has been successfully resolved."""
        return self._ready

    @property
    def backend(self) -> Optional[Backend]:
        """The resolved backend, or None before successful resolution."""
        return self._backend

    async def resolve(self) -> Backend:
        """
        Return the process backend, initializing it on first use.

        Returns:
            The resolved Backend

        Raises:
            BackendInitError: If initialization failed (now or earlier)
        """
        if self._task is None:
            self._task = asyncio.ensure_future(self._initialize())
        # A cancelled caller must not cancel the shared attempt
        return await asyncio.shield(self._task)

    async def _initialize(self) -> Backend:
        try:
            if self.config.has_native_bridge:
                logger.info("Native bridge detected at %s", self.config.bridge_url)
                backend = self._native_factory(self.config.bridge_url)
                await backend.connect()
            else:
                logger.info(
                    "No native bridge, using engine '%s'", self.config.engine_module
                )
                core = await self._engine_loader(self.config.engine_module)
                backend = EngineBackend(core)
        except Exception as e:
            logger.error("Backend initialization failed: %s", e)
            raise BackendInitError(f"Backend initialization failed: {e}") from e

        self._backend = backend
        self._ready = True
        logger.info("Backend '%s' ready", backend.name)
        return backend

    def reset(self) -> None:
        """
        Forget the cached resolution.

        Does not close a resolved backend; call `close()` for that.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._backend = None
        self._ready = False

    async def close(self) -> None:
        """Close the resolved backend, if any, and reset."""
        backend = self._backend
        self.reset()
        if backend is not None:
            await backend.close()


_default_resolver: Optional[BackendResolver] = None


def get_default_resolver() -> BackendResolver:
    """Return the process-wide resolver, creating it on first use."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = BackendResolver()
    return _default_resolver


async def resolve_backend() -> Backend:
    """Resolve the process-wide backend."""
    return await get_default_resolver().resolve()


def is_ready() -> bool:
    """Whether the process-wide backend has been resolved successfully."""
    return _default_resolver is not None and _default_resolver.ready


def reset_backend() -> None:
    """
    Discard the process-wide resolver.

    The next `get_default_resolver()` builds a fresh resolver from the
    current environment.
    """
    global _default_resolver
    if _default_resolver is not None:
        _default_resolver.reset()
    _default_resolver = None
