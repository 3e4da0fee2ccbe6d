"""
Risk Model

Risk = Base(level) x Confidence, rounded to an integer in [0, 100].
Confidence discounts severity; it never inflates it.
"""

from __future__ import annotations

import math
from types import MappingProxyType

from pdtm.signals.vocabulary import ActivityLevel

DEFAULT_BASE_SCORE = 5

BASE_SCORES: MappingProxyType[ActivityLevel, int] = MappingProxyType(
    {
        ActivityLevel.TRANSACTION: 70,
        ActivityLevel.UGC: 45,  # Creation
        ActivityLevel.ACCOUNT: 30,  # Standard login
        ActivityLevel.VIEW: DEFAULT_BASE_SCORE,
    }
)


def _round_half_up(value: float) -> int:
    # round() is banker's rounding: round(2.5) == 2
    return int(math.floor(value + 0.5))


def compute_base_score(level: ActivityLevel | str | None) -> int:
    """Base score for a level; anything unrecognized gets the VIEW base."""
    try:
        return BASE_SCORES[ActivityLevel(level)]
    except ValueError:
        return DEFAULT_BASE_SCORE


def compute_risk_score(base: float, confidence: float) -> int:
    """
    Clamp base x confidence to [0, 100] and round half-up.

    Non-finite input (NaN, inf) scores 0 rather than raising.

    Examples:
        >>> compute_risk_score(70, 0.5)
        35
        >>> compute_risk_score(5, 0.5)
        3
    """
    raw = base * confidence
    if math.isnan(raw):
        return 0
    return _round_half_up(max(0.0, min(100.0, raw)))


def compute_risk_confidence(confidence: float) -> float:
    """Confidence shown alongside the score; mirrors the classification confidence."""
    if math.isnan(confidence):
        return 0.0
    return max(0.0, min(1.0, confidence))


def score(level: ActivityLevel | str | None, confidence: float) -> int:
    return compute_risk_score(compute_base_score(level), confidence)
