"""
State Mapper

Maps level, score, confidence and context to a ManagementState.

Ordered decision list, first match wins:
1. Pinned by the user -> PINNED
2. High confidence TRANSACTION, or ACCOUNT with an RP/IdP relationship
   or enough score -> SUGGESTED
3. Non-VIEW with decent confidence or frequent visits -> NEEDS_REVIEW
4. Frequently visited VIEW -> NEEDS_REVIEW
5. NONE
"""

from __future__ import annotations

from enum import Enum

from pdtm.runtime.policy import THRESHOLDS, ManagementThresholds
from pdtm.signals.vocabulary import ActivityLevel, parse_level


class ManagementState(str, Enum):
    """How a domain surfaces in the UI, by attention required."""

    NONE = "none"  # Passive, hidden
    NEEDS_REVIEW = "needs_review"  # Soft list (candidate)
    SUGGESTED = "suggested"  # Hard list (likely account/transaction)
    PINNED = "pinned"  # User explicitly tracked


def is_managed(state: ManagementState | str) -> bool:
    """Hard list: SUGGESTED or PINNED."""
    return state in (ManagementState.SUGGESTED, ManagementState.PINNED)


def is_surfaced(state: ManagementState | str) -> bool:
    """Visible in any list."""
    return state in (
        ManagementState.SUGGESTED,
        ManagementState.NEEDS_REVIEW,
        ManagementState.PINNED,
    )


def decide(
    level: ActivityLevel | str,
    score: int,
    confidence: float,
    has_relationship: bool = False,
    visit_count: int = 0,
    is_pinned: bool = False,
    thresholds: ManagementThresholds = THRESHOLDS,
) -> ManagementState:
    """
    Decide the management state for a domain.

    Examples:
        >>> decide(ActivityLevel.ACCOUNT, 15, 0.8)
        <ManagementState.NEEDS_REVIEW: 'needs_review'>

        >>> decide(ActivityLevel.VIEW, 0, 0.0, is_pinned=True)
        <ManagementState.PINNED: 'pinned'>
    """
    if is_pinned:
        return ManagementState.PINNED

    level = parse_level(level)

    if confidence >= thresholds.suggested_min_confidence:
        if level is ActivityLevel.TRANSACTION:
            return ManagementState.SUGGESTED
        # A bare login-looking URL with no federation context is likely noise
        if level is ActivityLevel.ACCOUNT and (
            has_relationship or score >= thresholds.account_min_score
        ):
            return ManagementState.SUGGESTED

    frequent = visit_count > thresholds.frequent_visit_count

    if level is not ActivityLevel.VIEW:
        if confidence >= thresholds.review_min_confidence or frequent:
            return ManagementState.NEEDS_REVIEW
        return ManagementState.NONE

    if frequent:
        return ManagementState.NEEDS_REVIEW

    return ManagementState.NONE
