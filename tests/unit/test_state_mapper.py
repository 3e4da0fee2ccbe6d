"""
Tests for the management-state decision list.

First matching rule wins: pinned > suggested > needs review (non-view)
> needs review (frequent view) > none.
"""

from __future__ import annotations

import itertools

import pytest

from pdtm.risk.state_mapper import ManagementState, decide, is_managed, is_surfaced
from pdtm.runtime.policy import ManagementThresholds
from pdtm.signals.vocabulary import ActivityLevel


class TestPinned:
    def test_pinned_always_wins(self):
        for level, conf, visits, related in itertools.product(
            ActivityLevel, (0.0, 0.59, 0.6, 0.8, 1.0), (0, 50, 51, 10_000), (False, True)
        ):
            for value in (0, 20, 70, 100):
                assert (
                    decide(level, value, conf, related, visits, is_pinned=True)
                    is ManagementState.PINNED
                )


class TestSuggested:
    def test_high_confidence_transaction(self):
        assert decide(ActivityLevel.TRANSACTION, 56, 0.8) is ManagementState.SUGGESTED

    def test_account_with_relationship(self):
        assert (
            decide(ActivityLevel.ACCOUNT, 15, 0.8, has_relationship=True)
            is ManagementState.SUGGESTED
        )

    def test_account_with_enough_score(self):
        assert decide(ActivityLevel.ACCOUNT, 24, 0.8) is ManagementState.SUGGESTED

    def test_bare_account_match_is_only_reviewed(self):
        assert decide(ActivityLevel.ACCOUNT, 15, 0.8) is ManagementState.NEEDS_REVIEW

    def test_ugc_is_never_suggested(self):
        assert decide(ActivityLevel.UGC, 45, 1.0, has_relationship=True) is (
            ManagementState.NEEDS_REVIEW
        )


class TestNeedsReview:
    def test_decent_confidence(self):
        assert decide(ActivityLevel.UGC, 27, 0.6) is ManagementState.NEEDS_REVIEW

    def test_frequent_low_confidence_account(self):
        assert (
            decide(ActivityLevel.ACCOUNT, 3, 0.1, visit_count=51) is ManagementState.NEEDS_REVIEW
        )

    def test_frequent_view(self):
        assert decide(ActivityLevel.VIEW, 1, 0.1, visit_count=51) is ManagementState.NEEDS_REVIEW

    def test_fifty_visits_is_not_frequent(self):
        assert decide(ActivityLevel.VIEW, 0, 0.0, visit_count=50) is ManagementState.NONE


class TestNone:
    def test_low_confidence_account(self):
        assert decide(ActivityLevel.ACCOUNT, 9, 0.3) is ManagementState.NONE

    def test_view_with_high_confidence_is_still_none(self):
        assert decide(ActivityLevel.VIEW, 5, 1.0) is ManagementState.NONE

    def test_unknown_level_is_treated_as_view(self):
        assert decide("shopping", 5, 1.0) is ManagementState.NONE


def test_custom_thresholds():
    strict = ManagementThresholds(
        suggested_min_confidence=0.95,
        review_min_confidence=0.9,
        frequent_visit_count=5,
        account_min_score=25,
    )
    assert decide(ActivityLevel.TRANSACTION, 56, 0.8, thresholds=strict) is ManagementState.NONE
    assert decide(ActivityLevel.VIEW, 0, 0.0, visit_count=6, thresholds=strict) is (
        ManagementState.NEEDS_REVIEW
    )


@pytest.mark.parametrize(
    "state,managed,surfaced",
    [
        (ManagementState.NONE, False, False),
        (ManagementState.NEEDS_REVIEW, False, True),
        (ManagementState.SUGGESTED, True, True),
        (ManagementState.PINNED, True, True),
        ("suggested", True, True),
    ],
)
def test_state_helpers(state, managed, surfaced):
    assert is_managed(state) is managed
    assert is_surfaced(state) is surfaced
