"""Risk - attention scoring and management-state decisions"""

from .risk_model import BASE_SCORES, compute_base_score, compute_risk_score, score
from .state_mapper import ManagementState, decide, is_managed, is_surfaced

__all__ = [
    "BASE_SCORES",
    "ManagementState",
    "compute_base_score",
    "compute_risk_score",
    "decide",
    "is_managed",
    "is_surfaced",
    "score",
]
