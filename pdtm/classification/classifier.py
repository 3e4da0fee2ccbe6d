"""
Activity Classifier

Orchestrates: validate explicit signals -> derive URL signals -> pick level
-> aggregate evidence -> ActivityEstimation.

classify() is pure and synchronous. It never touches storage; callers
persist the estimation through the storage helpers.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pdtm.classification.evidence import aggregate_evidence
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import counter
from pdtm.runtime.policy import LEVEL_PRECEDENCE
from pdtm.signals.heuristics import extract_url_signals
from pdtm.signals.vocabulary import LEVEL_SIGNALS, ActivityLevel, SignalCode, is_known_signal

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActivityEstimation:
    """Result of one classification. Never mutated after creation."""

    level: ActivityLevel
    confidence: float
    reasons: tuple[SignalCode, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "level": self.level.value,
            "confidence": self.confidence,
            "reasons": [reason.value for reason in self.reasons],
        }


def validate_signals(signals: Iterable[object] | None) -> list[SignalCode]:
    """
    Keep only codes from the vocabulary, in input order.

    Unknown codes are dropped with a warning and counted; they are version
    skew or bogus content-script input, never a failure.

    Side Effects:
        - Increments the classifier.unknown_signal counter per dropped code
        - Logs a warning per dropped code
    """
    validated: list[SignalCode] = []
    for signal in signals or ():
        if is_known_signal(signal):
            validated.append(SignalCode(signal))
            continue
        counter("classifier.unknown_signal")
        # repr() bounded so adversarial payloads can't flood the log line
        logger.warning("Dropped unknown signal: %.64r", signal)
    return validated


def select_level(
    signals: Iterable[SignalCode],
    precedence: Sequence[ActivityLevel] = LEVEL_PRECEDENCE,
) -> ActivityLevel:
    """Highest-precedence level with at least one supporting signal, else VIEW."""
    present = set(signals)
    for level in precedence:
        if present & LEVEL_SIGNALS[level]:
            return level
    return ActivityLevel.VIEW


def classify(
    url: str | None,
    explicit_signals: Iterable[object] | None = None,
    precedence: Sequence[ActivityLevel] = LEVEL_PRECEDENCE,
) -> ActivityEstimation:
    """
    Classify a page visit.

    Args:
        url: Page URL (only its shape is read; malformed input adds no evidence)
        explicit_signals: Content- or relationship-derived codes
        precedence: Level evaluation order, highest severity first

    Returns:
        ActivityEstimation whose confidence covers only the signals that
        support the chosen level

    Examples:
        >>> classify("https://shop.example.com/checkout").level
        <ActivityLevel.TRANSACTION: 'transaction'>

        >>> classify("https://example.com/", ["not_a_code"])
        ActivityEstimation(level=<ActivityLevel.VIEW: 'view'>, confidence=0.0, reasons=())
    """
    signals = extract_url_signals(url) + validate_signals(explicit_signals)

    level = select_level(signals, precedence)
    if level is ActivityLevel.VIEW:
        return ActivityEstimation(level=ActivityLevel.VIEW, confidence=0.0, reasons=())

    supporting = [signal for signal in signals if signal in LEVEL_SIGNALS[level]]
    evidence = aggregate_evidence(supporting)
    return ActivityEstimation(level=level, confidence=evidence.confidence, reasons=evidence.reasons)
