"""In-process storage backend (tests, single-process deployments)."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from pdtm.exceptions import StorageError


def _json_copy(value: Any) -> Any:
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise StorageError(f"Value is not JSON-serializable: {e}") from e


class MemoryStorage:
    """
    Dict-backed StorageBackend.

    Values are JSON-copied on the way in and out, so callers can never
    mutate stored state by holding a reference.

    `fail_next(operation)` makes the next get or set raise StorageError,
    which lets tests exercise the failure paths.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {k: _json_copy(v) for k, v in (initial or {}).items()}
        self._pending_failures: dict[str, StorageError] = {}
        self.get_calls = 0
        self.set_calls = 0

    def fail_next(self, operation: str = "set", message: str = "injected failure") -> None:
        if operation not in ("get", "set"):
            raise ValueError(f"Unknown storage operation: {operation}")
        self._pending_failures[operation] = StorageError(message)

    def _raise_pending(self, operation: str) -> None:
        error = self._pending_failures.pop(operation, None)
        if error is not None:
            raise error

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        self.get_calls += 1
        self._raise_pending("get")
        return {key: _json_copy(self._data[key]) for key in keys if key in self._data}

    async def set(self, items: Mapping[str, Any]) -> None:
        self.set_calls += 1
        self._raise_pending("set")
        # Encode everything first so a bad value leaves the store untouched
        encoded = {key: _json_copy(value) for key, value in items.items()}
        self._data.update(encoded)

    def snapshot(self) -> dict[str, Any]:
        """Synchronous copy of everything stored."""
        return _json_copy(self._data)
