"""
Data Retention

Drops raw events past their TTL and prunes domains that have been inactive
for too long, including domains only ever seen through content signals.
Pinned domains are never pruned.

Usage:
    # After each navigation (cheap no-op unless the interval has elapsed)
    await perform_retention_check(storage)

    # Manual cleanup from the UI
    stats = await perform_retention_check(storage, force=True)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pdtm.config import CLEANUP_INTERVAL_HOURS
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import log_event
from pdtm.storage.backend import StorageBackend, load_state
from pdtm.storage.keys import (
    ACTIVITY_STATE_KEY,
    DOMAIN_STATE_KEY,
    EVENTS_KEY,
    POLICY_KEY,
    RISK_STATE_KEY,
    USER_OVERRIDES_KEY,
)
from pdtm.storage.models import RetentionPolicy
from pdtm.storage.user_overrides import is_pinned
from pdtm.utils.clock import now_ms as current_ms

logger = get_logger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class CleanupStats:
    events_removed: int = 0
    domains_pruned: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"eventsRemoved": self.events_removed, "domainsPruned": self.domains_pruned}


def is_cleanup_due(
    policy: RetentionPolicy, now_ms: int, interval_hours: int = CLEANUP_INTERVAL_HOURS
) -> bool:
    return now_ms - policy.last_cleanup_ts >= interval_hours * HOUR_MS


def _last_active(
    domain: str,
    domain_state: dict[str, Any],
    activity_state: dict[str, Any],
    risk_state: dict[str, Any],
) -> int:
    """Last visit if the domain was ever navigated to, else its newest classification."""
    record = domain_state.get(domain)
    if record is not None:
        return record.get("last_seen", 0)
    return max(
        (activity_state.get(domain) or {}).get("last_estimation_ts", 0),
        (risk_state.get(domain) or {}).get("last_updated_ts", 0),
    )


async def perform_retention_check(
    storage: StorageBackend,
    force: bool = False,
    now_ms: int | None = None,
) -> CleanupStats | None:
    """
    Run cleanup if forced or due.

    Side Effects:
        - Reads events, domain/activity/risk state, overrides and the policy
        - Writes all of them back in a single set() when cleanup runs
        - Logs a cleanup event with the counts

    Returns:
        CleanupStats when cleanup ran, None when it was skipped
    """
    now = now_ms if now_ms is not None else current_ms()

    state = await load_state(
        storage,
        POLICY_KEY,
        EVENTS_KEY,
        DOMAIN_STATE_KEY,
        ACTIVITY_STATE_KEY,
        RISK_STATE_KEY,
        USER_OVERRIDES_KEY,
    )
    policy = RetentionPolicy.model_validate(state[POLICY_KEY])

    if not force and not is_cleanup_due(policy, now):
        return None

    # 1. Raw events past TTL
    event_cutoff = now - policy.raw_events_ttl_days * DAY_MS
    events = state[EVENTS_KEY]
    kept_events = [event for event in events if event.get("ts", 0) >= event_cutoff]

    # 2. Inactive domains (pinned ones survive)
    domain_cutoff = now - policy.prune_inactive_domains_days * DAY_MS
    overrides = state[USER_OVERRIDES_KEY]
    domain_state = dict(state[DOMAIN_STATE_KEY])
    activity_state = dict(state[ACTIVITY_STATE_KEY])
    risk_state = dict(state[RISK_STATE_KEY])

    # Signal-only domains have activity/risk records but no domain_state entry
    known = [*domain_state, *activity_state, *risk_state]
    stale = [
        domain
        for domain in dict.fromkeys(known)
        if _last_active(domain, domain_state, activity_state, risk_state) < domain_cutoff
        and not is_pinned(overrides, domain)
    ]
    for domain in stale:
        domain_state.pop(domain, None)
        activity_state.pop(domain, None)
        risk_state.pop(domain, None)

    updated_policy = policy.model_copy(update={"last_cleanup_ts": now})

    await storage.set(
        {
            EVENTS_KEY: kept_events,
            DOMAIN_STATE_KEY: domain_state,
            ACTIVITY_STATE_KEY: activity_state,
            RISK_STATE_KEY: risk_state,
            POLICY_KEY: updated_policy.to_storage(),
        }
    )

    stats = CleanupStats(events_removed=len(events) - len(kept_events), domains_pruned=len(stale))
    log_event(
        "retention.cleanup",
        forced=force,
        events_removed=stats.events_removed,
        domains_pruned=stats.domains_pruned,
    )
    return stats
