"""
Evidence weights and auxiliary-signal bounds.

Single source of truth for confidence scoring. Both tables are read-only
mappings built once at import; there is no runtime mutation path.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from pdtm.signals.vocabulary import SignalCode

STRONG_PATH_WEIGHT: Final[float] = 0.3

EVIDENCE_WEIGHTS: MappingProxyType[SignalCode, float] = MappingProxyType(
    {
        SignalCode.REDIRECT_URI_MATCH: 0.6,  # Parameter matches session context
        SignalCode.KNOWN_IDP: 0.5,  # Allowlist match
        SignalCode.URL_LOGIN: STRONG_PATH_WEIGHT,
        SignalCode.URL_PAYMENT: STRONG_PATH_WEIGHT,
        SignalCode.URL_EDITOR: STRONG_PATH_WEIGHT,
        SignalCode.OAUTH_PARAMS: 0.2,  # Structural signature
        SignalCode.OPENER_LINK: 0.2,  # Contextual linkage
        SignalCode.TEMPORAL_CHAIN: 0.2,  # Behavioral signature (round-trip)
    }
)


@dataclass(frozen=True)
class AuxConstants:
    """Bounds for content-derived signals."""

    MAX_BONUS: float = 0.1  # Max total additive effect from aux signals
    MIN_VAL: float = 0.05  # Min value for a single aux signal
    MAX_VAL: float = 0.10  # Max value for a single aux signal

    # If ONLY aux evidence exists, confidence cannot exceed this
    CAP_WITHOUT_STRONG_EVIDENCE: float = 0.6


AUX_CONSTANTS: Final[AuxConstants] = AuxConstants()

AUX_SIGNAL_VALUES: MappingProxyType[SignalCode, float] = MappingProxyType(
    {
        SignalCode.DOM_PASSWORD: 0.10,
        SignalCode.DOM_PAYMENT: 0.10,
        SignalCode.DOM_EDITOR: 0.08,
    }
)


def is_strong(code: SignalCode) -> bool:
    return code in EVIDENCE_WEIGHTS


def is_auxiliary(code: SignalCode) -> bool:
    return code in AUX_SIGNAL_VALUES
