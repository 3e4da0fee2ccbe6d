"""
Evidence Aggregator / Confidence Engine

Combines signal codes into a bounded confidence value.

Scoring rules:
- Strong signals add their fixed weight, each counted once
- Auxiliary (content) signals are clamped per signal to [MIN_VAL, MAX_VAL]
  and their total to MAX_BONUS
- The sum is clamped to [0, 1]
- Without any strong signal the result is capped at CAP_WITHOUT_STRONG_EVIDENCE

Content markers like a password field only corroborate structural evidence;
on their own they never reach a high-confidence verdict.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pdtm.signals.evidence_weights import (
    AUX_CONSTANTS,
    AUX_SIGNAL_VALUES,
    EVIDENCE_WEIGHTS,
    is_auxiliary,
    is_strong,
)
from pdtm.signals.vocabulary import SignalCode


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class EvidenceResult:
    """Aggregated confidence plus the signals that produced it."""

    confidence: float
    strong_confidence: float
    aux_confidence: float
    reasons: tuple[SignalCode, ...]

    @property
    def has_strong_evidence(self) -> bool:
        return self.strong_confidence > 0


def _dedupe(signals: Iterable[SignalCode]) -> list[SignalCode]:
    seen: set[SignalCode] = set()
    ordered: list[SignalCode] = []
    for signal in signals:
        if signal not in seen:
            seen.add(signal)
            ordered.append(signal)
    return ordered


def aggregate_evidence(signals: Iterable[SignalCode]) -> EvidenceResult:
    """
    Score a collection of (already validated) signal codes.

    Duplicates count once. `reasons` lists the matched codes in the order
    first encountered.

    Examples:
        >>> aggregate_evidence([SignalCode.KNOWN_IDP, SignalCode.URL_LOGIN]).confidence
        0.8

        >>> aggregate_evidence([SignalCode.DOM_PASSWORD]).confidence
        0.1
    """
    strong = 0.0
    aux = 0.0
    reasons: list[SignalCode] = []

    for signal in _dedupe(signals):
        if is_strong(signal):
            strong += EVIDENCE_WEIGHTS[signal]
            reasons.append(signal)
        elif is_auxiliary(signal):
            aux += clamp(AUX_SIGNAL_VALUES[signal], AUX_CONSTANTS.MIN_VAL, AUX_CONSTANTS.MAX_VAL)
            reasons.append(signal)

    aux = min(aux, AUX_CONSTANTS.MAX_BONUS)
    confidence = clamp(strong + aux, 0.0, 1.0)

    if strong == 0:
        confidence = min(confidence, AUX_CONSTANTS.CAP_WITHOUT_STRONG_EVIDENCE)

    return EvidenceResult(
        # Round away float noise (0.3 + 0.5 -> 0.8, not 0.7999999999999999)
        confidence=round(confidence, 6),
        strong_confidence=round(strong, 6),
        aux_confidence=round(aux, 6),
        reasons=tuple(reasons),
    )
