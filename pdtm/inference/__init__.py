"""
RP/IdP inference - candidate domains, relationship signals, round-trip detection.
"""

from .roundtrip import check_temporal_roundtrip, is_roundtrip
from .rp_inference import (
    RelationshipInferrer,
    acts_as_idp,
    infer_idp_domain,
    infer_relationship,
    infer_rp_from_redirect_uri,
)
from .types import RelationshipCandidate, RelationshipInference, SessionContext, SessionEvent

__all__ = [
    "RelationshipCandidate",
    "RelationshipInference",
    "RelationshipInferrer",
    "SessionContext",
    "SessionEvent",
    "acts_as_idp",
    "check_temporal_roundtrip",
    "infer_idp_domain",
    "infer_relationship",
    "infer_rp_from_redirect_uri",
    "is_roundtrip",
]
