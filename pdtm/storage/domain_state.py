"""
Domain State Repository

Per-domain visit statistics. Pure functions over the whole state map: the
caller reads the map, applies updates, and writes it back once.
"""

from __future__ import annotations

from typing import Any

from pdtm.storage.models import DomainState


def get_domain_state(state_map: dict[str, Any], domain: str) -> DomainState | None:
    raw = state_map.get(domain)
    return DomainState.model_validate(raw) if raw else None


def apply_domain_visit(
    state_map: dict[str, Any], domain: str, timestamp: int
) -> tuple[dict[str, Any], DomainState]:
    """
    Record one visit.

    Returns:
        (new state map, updated record). The input map is not modified.
    """
    current = get_domain_state(state_map, domain) or DomainState(
        domain=domain, first_seen=timestamp
    )
    record = current.model_copy(
        update={
            "last_seen": timestamp,
            "visit_count_total": current.visit_count_total + 1,
        }
    )
    updated = dict(state_map)
    updated[domain] = record.to_storage()
    return updated, record


def visit_count(state_map: dict[str, Any], domain: str) -> int:
    record = get_domain_state(state_map, domain)
    return record.visit_count_total if record else 0
