"""Storage - key/value backends, stored records and aggregate updates"""

from .backend import StorageBackend, load_state
from .memory import MemoryStorage
from .retention import CleanupStats, perform_retention_check
from .session_store import InMemorySessionStore, SessionContextProvider, SessionRecorder
from .sqlite import SqliteStorage

__all__ = [
    "CleanupStats",
    "InMemorySessionStore",
    "MemoryStorage",
    "SessionContextProvider",
    "SessionRecorder",
    "SqliteStorage",
    "StorageBackend",
    "load_state",
    "perform_retention_check",
]
