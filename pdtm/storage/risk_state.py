"""
Risk State Repository

Calculated attention scores per domain. Higher means the domain needs
more attention.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pdtm.risk.risk_model import compute_risk_confidence
from pdtm.risk.state_mapper import ManagementState
from pdtm.storage.models import RiskRecord

if TYPE_CHECKING:
    from pdtm.classification.classifier import ActivityEstimation
    from pdtm.inference.types import RelationshipInference


def build_risk_record(
    estimation: ActivityEstimation,
    score: int,
    state: ManagementState,
    timestamp: int,
    relationship: RelationshipInference | None = None,
) -> RiskRecord:
    linked = relationship is not None and relationship.has_relationship
    return RiskRecord(
        score=score,
        confidence=compute_risk_confidence(estimation.confidence),
        reasons=list(estimation.reasons),
        last_updated_ts=timestamp,
        level=estimation.level,
        management_state=state,
        rp_domain=relationship.rp_domain if linked else None,
        idp_domain=relationship.idp_domain if linked else None,
    )


def get_risk_record(state_map: dict[str, Any], domain: str) -> RiskRecord | None:
    raw = state_map.get(domain)
    return RiskRecord.model_validate(raw) if raw else None


def apply_risk_record(
    state_map: dict[str, Any], domain: str, record: RiskRecord
) -> dict[str, Any]:
    """Replace the domain's risk record. The input map is not modified."""
    updated = dict(state_map)
    updated[domain] = record.to_storage()
    return updated


def ranked_domains(state_map: dict[str, Any]) -> list[tuple[str, RiskRecord]]:
    """All risk records, highest score first (ties: most recently updated first)."""
    records = [(domain, RiskRecord.model_validate(raw)) for domain, raw in state_map.items() if raw]
    records.sort(key=lambda item: (-item[1].score, -item[1].last_updated_ts, item[0]))
    return records
