"""
Backend Adapters

Two mutually exclusive adapters satisfy the Backend interface:
    - native: message-passing bridge exposed by the desktop host
    - engine: in-process engine module loaded by name
"""

from .base import Backend
from .engine import EngineBackend, load_engine
from .native import NativeBackend

__all__ = ["Backend", "EngineBackend", "NativeBackend", "load_engine"]
