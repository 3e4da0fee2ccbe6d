"""
Module: types
Purpose: Shared types for RP/IdP inference and session lineage.
Dependencies: pdtm.signals.vocabulary only

Leaf module so the session store and the inference code can both import
these without a cycle.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from pdtm.signals.vocabulary import SignalCode


@dataclass(frozen=True)
class SessionEvent:
    """One navigation in a tab lineage. `domain` is always an eTLD+1."""

    domain: str
    timestamp: int  # epoch ms
    event_type: str = "page_view"


@dataclass(frozen=True)
class SessionContext:
    """Ordered (oldest first) navigation events for a single tab lineage."""

    tab_id: int
    events: tuple[SessionEvent, ...] = ()

    @classmethod
    def from_events(cls, tab_id: int, events: Sequence[SessionEvent]) -> SessionContext:
        return cls(tab_id=tab_id, events=tuple(events))

    def domains(self) -> list[str]:
        return [event.domain for event in self.events]


@dataclass(frozen=True)
class RelationshipCandidate:
    """Normalized eTLD+1 candidates; never URLs, paths or query strings."""

    rp_domain: str | None = None
    idp_domain: str | None = None

    @property
    def is_distinct_pair(self) -> bool:
        return bool(self.rp_domain and self.idp_domain and self.rp_domain != self.idp_domain)


@dataclass(frozen=True)
class RelationshipInference:
    """Outcome of the three inference paths plus the derived relationship signals."""

    candidate: RelationshipCandidate
    redirect_rp: str | None = None
    opener_rp: str | None = None
    roundtrip: bool = False
    signals: tuple[SignalCode, ...] = field(default_factory=tuple)

    @property
    def rp_domain(self) -> str | None:
        return self.candidate.rp_domain

    @property
    def idp_domain(self) -> str | None:
        return self.candidate.idp_domain

    @property
    def has_relationship(self) -> bool:
        return self.candidate.is_distinct_pair
