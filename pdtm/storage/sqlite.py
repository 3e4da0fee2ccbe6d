"""
SQLite storage backend.

One key/value table; values are JSON text. Blocking sqlite3 calls run in a
worker thread via asyncio.to_thread, guarded by a lock so only one thread
touches the connection at a time.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pdtm.config import DB_PATH
from pdtm.exceptions import StorageError
from pdtm.infrastructure.database import create_connection, db_transaction, retry_on_db_lock
from pdtm.observability.logging import get_logger

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""


class SqliteStorage:
    """
    StorageBackend persisted to a single SQLite file.

    Side Effects:
        - Creates the database file and kv_store table on first use
    """

    def __init__(self, db_path: Path | str = DB_PATH) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = create_connection(self.db_path)
            with db_transaction(self._conn) as conn:
                conn.execute(_SCHEMA)
            logger.info("Opened storage database %s", self.db_path.name)
        return self._conn

    @retry_on_db_lock()
    def _get_sync(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        with self._lock:
            conn = self._connection()
            placeholders = ",".join("?" for _ in keys)
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})", keys
            ).fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}

    @retry_on_db_lock()
    def _set_sync(self, encoded: list[tuple[str, str]]) -> None:
        with self._lock:
            conn = self._connection()
            with db_transaction(conn):
                conn.executemany(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    encoded,
                )

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._get_sync, list(keys))
        except (sqlite3.Error, json.JSONDecodeError) as e:
            raise StorageError(f"Storage read failed: {e}") from e

    async def set(self, items: Mapping[str, Any]) -> None:
        try:
            encoded = [(key, json.dumps(value)) for key, value in items.items()]
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON-serializable: {e}") from e
        try:
            await asyncio.to_thread(self._set_sync, encoded)
        except sqlite3.Error as e:
            raise StorageError(f"Storage write failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
