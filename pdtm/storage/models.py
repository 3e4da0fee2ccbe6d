"""
Stored record models (Pydantic v2).

Field names match the persisted JSON documents. Records only ever carry
hostnames or eTLD+1 domains, never full URLs, paths or query values.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pdtm.config import MAX_EVENTS_DEFAULT, PRUNE_INACTIVE_DOMAINS_DAYS, RAW_EVENTS_TTL_DAYS
from pdtm.risk.state_mapper import ManagementState
from pdtm.signals.vocabulary import ActivityLevel, SignalCode


class StoredModel(BaseModel):
    """Base for persisted records: unknown keys are kept on round-trip."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RawEvent(StoredModel):
    ts: int = Field(ge=0)
    domain: str
    type: str = "page_view"


class AppSettings(StoredModel):
    collection_enabled: bool = Field(default=True, alias="collectionEnabled")
    max_events: int = Field(default=MAX_EVENTS_DEFAULT, ge=1, alias="maxEvents")


class RetentionPolicy(StoredModel):
    raw_events_ttl_days: int = Field(default=RAW_EVENTS_TTL_DAYS, ge=0)
    prune_inactive_domains_days: int = Field(default=PRUNE_INACTIVE_DOMAINS_DAYS, ge=0)
    last_cleanup_ts: int = Field(default=0, ge=0)


class DomainState(StoredModel):
    domain: str
    first_seen: int
    last_seen: int = 0
    visit_count_total: int = Field(default=0, ge=0)


def _zero_counts() -> dict[str, int]:
    return {level.value: 0 for level in ActivityLevel}


class DomainActivityState(StoredModel):
    domain: str
    last_estimation_level: ActivityLevel = ActivityLevel.VIEW
    last_estimation_ts: int = 0
    counts_by_level: dict[str, int] = Field(default_factory=_zero_counts)
    last_account_touch_ts: int | None = None
    last_transaction_signal_ts: int | None = None


class RiskRecord(StoredModel):
    score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[SignalCode] = Field(default_factory=list)
    last_updated_ts: int = 0
    level: ActivityLevel = ActivityLevel.VIEW
    management_state: ManagementState = ManagementState.NONE
    rp_domain: str | None = None
    idp_domain: str | None = None


class UserOverride(StoredModel):
    pinned: bool = False  # Protected from retention pruning
    whitelisted: bool = False
    ignored: bool = False
    category: str | None = None
    notes: str | None = None
    updated_ts: int = 0

    @field_validator("notes")
    @classmethod
    def _notes_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > 1000:
            raise ValueError("notes must be at most 1000 characters")
        return value
