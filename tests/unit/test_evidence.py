"""
Tests for the evidence aggregator.

Validates:
1. Strong weights add once per distinct signal
2. Auxiliary signals are bounded per signal and in total
3. Auxiliary-only evidence never exceeds the cap
4. Confidence always stays within [0, 1]
5. Reasons keep first-seen order
"""

from __future__ import annotations

from itertools import chain, combinations

import pytest

from pdtm.classification.evidence import aggregate_evidence
from pdtm.signals.evidence_weights import (
    AUX_CONSTANTS,
    AUX_SIGNAL_VALUES,
    EVIDENCE_WEIGHTS,
    is_auxiliary,
    is_strong,
)
from pdtm.signals.vocabulary import SignalCode


def _all_subsets(items):
    items = list(items)
    return chain.from_iterable(combinations(items, n) for n in range(len(items) + 1))


def test_weight_table_values():
    assert EVIDENCE_WEIGHTS[SignalCode.REDIRECT_URI_MATCH] == 0.6
    assert EVIDENCE_WEIGHTS[SignalCode.KNOWN_IDP] == 0.5
    assert EVIDENCE_WEIGHTS[SignalCode.URL_LOGIN] == 0.3
    assert EVIDENCE_WEIGHTS[SignalCode.OAUTH_PARAMS] == 0.2
    assert EVIDENCE_WEIGHTS[SignalCode.OPENER_LINK] == 0.2
    assert EVIDENCE_WEIGHTS[SignalCode.TEMPORAL_CHAIN] == 0.2


def test_strong_and_auxiliary_are_disjoint():
    for code in SignalCode:
        assert not (is_strong(code) and is_auxiliary(code))
    assert is_strong(SignalCode.OPENER_LINK)
    assert is_auxiliary(SignalCode.DOM_EDITOR)
    # Level-only codes carry no confidence
    assert not is_strong(SignalCode.URL_PAYMENT)
    assert not is_auxiliary(SignalCode.URL_PAYMENT)
    assert aggregate_evidence([SignalCode.URL_PAYMENT]).confidence == 0.0


def test_weight_table_is_read_only():
    with pytest.raises(TypeError):
        EVIDENCE_WEIGHTS[SignalCode.URL_LOGIN] = 1.0  # type: ignore[index]


def test_strong_signals_sum():
    result = aggregate_evidence([SignalCode.URL_LOGIN, SignalCode.KNOWN_IDP])
    assert result.confidence == pytest.approx(0.8)
    assert result.has_strong_evidence


def test_duplicates_count_once():
    once = aggregate_evidence([SignalCode.URL_LOGIN])
    twice = aggregate_evidence([SignalCode.URL_LOGIN, SignalCode.URL_LOGIN, SignalCode.URL_LOGIN])
    assert twice.confidence == once.confidence
    assert twice.reasons == (SignalCode.URL_LOGIN,)


def test_aux_total_is_bounded_by_max_bonus():
    result = aggregate_evidence(
        [SignalCode.URL_PAYMENT, SignalCode.DOM_PAYMENT, SignalCode.DOM_PASSWORD]
    )
    assert result.aux_confidence == pytest.approx(AUX_CONSTANTS.MAX_BONUS)
    assert result.confidence == pytest.approx(0.3 + AUX_CONSTANTS.MAX_BONUS)


def test_each_aux_value_is_within_per_signal_bounds():
    for value in AUX_SIGNAL_VALUES.values():
        assert AUX_CONSTANTS.MIN_VAL <= value <= AUX_CONSTANTS.MAX_VAL


def test_aux_only_evidence_never_exceeds_cap():
    for subset in _all_subsets(AUX_SIGNAL_VALUES):
        result = aggregate_evidence(list(subset) * 3)
        assert result.confidence <= AUX_CONSTANTS.CAP_WITHOUT_STRONG_EVIDENCE
        assert not result.has_strong_evidence


def test_confidence_is_clamped_to_one():
    result = aggregate_evidence(
        [
            SignalCode.REDIRECT_URI_MATCH,
            SignalCode.KNOWN_IDP,
            SignalCode.URL_LOGIN,
            SignalCode.DOM_PASSWORD,
        ]
    )
    assert result.confidence == 1.0


def test_confidence_always_in_unit_interval():
    for subset in _all_subsets(SignalCode):
        result = aggregate_evidence(subset)
        assert 0.0 <= result.confidence <= 1.0


def test_empty_input():
    result = aggregate_evidence([])
    assert result.confidence == 0.0
    assert result.reasons == ()


def test_reasons_keep_first_seen_order():
    result = aggregate_evidence(
        [SignalCode.DOM_PASSWORD, SignalCode.URL_LOGIN, SignalCode.DOM_PASSWORD]
    )
    assert result.reasons == (SignalCode.DOM_PASSWORD, SignalCode.URL_LOGIN)
