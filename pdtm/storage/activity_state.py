"""
Activity State Repository

Stores what kind of actions happen on a domain: the last estimation, a
per-level counter, and the last ACCOUNT / TRANSACTION touch timestamps.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pdtm.signals.vocabulary import ActivityLevel
from pdtm.storage.models import DomainActivityState

if TYPE_CHECKING:
    from pdtm.classification.classifier import ActivityEstimation


def get_activity_state(state_map: dict[str, Any], domain: str) -> DomainActivityState | None:
    raw = state_map.get(domain)
    return DomainActivityState.model_validate(raw) if raw else None


def apply_activity_estimation(
    state_map: dict[str, Any],
    domain: str,
    estimation: ActivityEstimation,
    timestamp: int,
) -> tuple[dict[str, Any], DomainActivityState]:
    """Fold one estimation into the domain's aggregate. The input map is not modified."""
    current = get_activity_state(state_map, domain) or DomainActivityState(domain=domain)

    counts = dict(current.counts_by_level)
    counts[estimation.level.value] = counts.get(estimation.level.value, 0) + 1

    update: dict[str, Any] = {
        "counts_by_level": counts,
        "last_estimation_level": estimation.level,
        "last_estimation_ts": timestamp,
    }
    if estimation.level is ActivityLevel.ACCOUNT:
        update["last_account_touch_ts"] = timestamp
    elif estimation.level is ActivityLevel.TRANSACTION:
        update["last_transaction_signal_ts"] = timestamp

    record = current.model_copy(update=update)
    updated = dict(state_map)
    updated[domain] = record.to_storage()
    return updated, record
