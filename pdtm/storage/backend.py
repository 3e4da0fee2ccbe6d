"""
Storage contract.

`get(keys)` returns only the keys that exist; `set(items)` writes every item
or none. There is no per-key atomic update: callers serialize their own
read-modify-write cycles (see pdtm.runtime.update_queue).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from pdtm.storage.keys import default_for


@runtime_checkable
class StorageBackend(Protocol):
    """Async key/value store holding JSON documents."""

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return {key: value} for the requested keys that exist."""
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        """Persist all items in one write."""
        ...


async def load_state(storage: StorageBackend, *keys: str) -> dict[str, Any]:
    """
    Read `keys`, filling any missing ones with their defaults.

    Side Effects:
        - Reads from the storage backend
    """
    data = await storage.get(keys)
    return {key: data[key] if data.get(key) is not None else default_for(key) for key in keys}
