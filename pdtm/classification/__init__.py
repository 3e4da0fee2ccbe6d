"""Classification - evidence aggregation and activity-level estimation"""

from .classifier import ActivityEstimation, classify, select_level, validate_signals
from .evidence import EvidenceResult, aggregate_evidence

__all__ = [
    "ActivityEstimation",
    "EvidenceResult",
    "aggregate_evidence",
    "classify",
    "select_level",
    "validate_signals",
]
