"""Centralized SQLite helpers

The SQLite storage backend keeps everything in ONE database file
(pdtm/data/pdtm.db unless PDTM_DB_PATH says otherwise).

Provides:
- Connection creation with WAL mode and an integrity check
- Transaction context manager (commit on success, rollback on error)
- Retry decorator for transient "database is locked" errors
"""

from __future__ import annotations

import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

from pdtm.config import (
    DB_CONNECT_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from pdtm.exceptions import StorageError
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Decorator to retry database operations on SQLITE_BUSY errors

    Exponential backoff with jitter. Non-lock OperationalErrors are raised
    immediately.

    Usage:
        @retry_on_db_lock()
        def write_items(conn, items):
            with db_transaction(conn):
                conn.executemany("INSERT ...", items)

    Side Effects:
        - Sleeps between retries
        - Logs a warning per retry and an error when retries are exhausted
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except sqlite3.OperationalError as e:
                    message = str(e).lower()
                    if "locked" not in message and "busy" not in message:
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        counter("database.lock_retry_exhausted")
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    time.sleep(sleep_time)

            raise AssertionError("unreachable")

        return wrapper  # type: ignore[return-value]

    return decorator


def create_connection(db_path: Path | str) -> sqlite3.Connection:
    """
    Open an SQLite connection with the project's settings.

    Side Effects:
        - Creates the parent directory and database file if missing
        - Sets WAL journal mode

    Raises:
        StorageError: If the database is corrupt or cannot be opened
    """
    path = Path(db_path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(str(path), timeout=DB_CONNECT_TIMEOUT, check_same_thread=False)
    except sqlite3.Error as e:
        raise StorageError(f"Failed to open database {path.name}: {e}") from e

    try:
        result = conn.execute("PRAGMA quick_check(1)").fetchone()
        if result[0] != "ok":
            raise StorageError(f"Database corruption detected: {result[0]}")
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
    except sqlite3.DatabaseError as e:
        conn.close()
        logger.critical("Database corruption or error during integrity check: %s", e)
        counter("database.corruption_detected")
        raise StorageError(f"Database corruption detected: {e}") from e
    except StorageError:
        conn.close()
        counter("database.corruption_detected")
        raise

    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """
    Run a block in a transaction.

    Side Effects:
        - Commits on success, rolls back on any exception (then re-raises)
    """
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
