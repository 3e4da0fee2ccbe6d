"""Temporal round-trip detection (RP -> IdP -> RP) over a session's navigation order."""

from __future__ import annotations

from collections.abc import Iterable

from pdtm.inference.types import SessionContext, SessionEvent
from pdtm.utils.domain import etld_plus_one


def is_roundtrip(
    rp_candidate: str | None,
    idp_candidate: str | None,
    events: Iterable[SessionEvent] | None,
) -> bool:
    """
    True if the domain sequence contains RP, then IdP, then RP again.

    A subsequence match: order matters, adjacency does not, so unrelated
    navigations in between (CDNs, consent pages) don't break the chain.
    Identical or missing candidates never form a round-trip.
    """
    rp = etld_plus_one(rp_candidate)
    idp = etld_plus_one(idp_candidate)
    if not rp or not idp or rp == idp or events is None:
        return False

    pattern = (rp, idp, rp)
    matched = 0
    for event in events:
        if etld_plus_one(event.domain) == pattern[matched]:
            matched += 1
            if matched == len(pattern):
                return True
    return False


def check_temporal_roundtrip(
    rp_domain: str | None,
    idp_domain: str | None,
    context: SessionContext | None,
) -> bool:
    """is_roundtrip() over a SessionContext; an absent context is simply False."""
    if not rp_domain or not idp_domain or rp_domain == idp_domain:
        return False
    if context is None or not context.events:
        return False
    return is_roundtrip(rp_domain, idp_domain, context.events)
