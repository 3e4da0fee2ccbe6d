"""
User Overrides Repository

Per-domain user preferences: pin, whitelist, ignore, category, notes.
Only `pinned` feeds the management decision and retention; the rest is
carried for presentation.

The map is only rewritten by ActivityMonitorService.set_user_override,
which runs inside the update queue.
"""

from __future__ import annotations

from typing import Any

from pdtm.storage.models import UserOverride

OVERRIDE_FIELDS = frozenset({"pinned", "whitelisted", "ignored", "category", "notes"})


def get_override(store: dict[str, Any], domain: str) -> UserOverride | None:
    raw = store.get(domain)
    return UserOverride.model_validate(raw) if raw else None


def is_pinned(store: dict[str, Any], domain: str) -> bool:
    override = get_override(store, domain)
    return bool(override and override.pinned)


def apply_user_override(
    store: dict[str, Any],
    domain: str,
    partial: dict[str, Any],
    timestamp: int,
) -> tuple[dict[str, Any], UserOverride]:
    """
    Merge `partial` into the domain's override. The input map is not modified.

    Raises:
        ValueError: On fields outside OVERRIDE_FIELDS
        pydantic.ValidationError: On invalid field values
    """
    unknown = set(partial) - OVERRIDE_FIELDS
    if unknown:
        raise ValueError(f"Unknown override fields: {', '.join(sorted(unknown))}")

    current = get_override(store, domain) or UserOverride()
    merged = {**current.to_storage(), **partial, "updated_ts": timestamp}
    record = UserOverride.model_validate(merged)

    updated = dict(store)
    updated[domain] = record.to_storage()
    return updated, record

