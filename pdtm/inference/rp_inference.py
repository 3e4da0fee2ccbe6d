"""
Deduces Relying Party (RP) and Identity Provider (IdP) candidates.

Three independent paths, each optional:
- redirect parameter: the domain the current page will hand control back to
- opener lineage: whoever opened the current tab is typically the RP
- self-identification: the current page's own eTLD+1 is the IdP candidate

Key: infer_relationship() is pure; RelationshipInferrer wraps it with the
session-context lookups (tab opener, last domain, session events).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pdtm.inference.roundtrip import check_temporal_roundtrip
from pdtm.inference.types import RelationshipCandidate, RelationshipInference, SessionContext
from pdtm.observability.logging import get_logger
from pdtm.signals.heuristics import extract_url_signals
from pdtm.signals.vocabulary import IDP_PAGE_SIGNALS, SignalCode
from pdtm.utils.domain import domain_of, etld_plus_one, extract_embedded_redirect_domain

if TYPE_CHECKING:
    from pdtm.storage.session_store import SessionContextProvider

logger = get_logger(__name__)


def infer_rp_from_redirect_uri(url: str | None) -> str | None:
    """RP candidate from the `redirect_uri` / `return_to` parameter."""
    return extract_embedded_redirect_domain(url)


def infer_idp_domain(url: str | None) -> str | None:
    """IdP candidate: the current page's own eTLD+1."""
    return domain_of(url)


def acts_as_idp(url: str | None) -> bool:
    """True if the URL itself looks like a sign-in or authorization endpoint."""
    return any(signal in IDP_PAGE_SIGNALS for signal in extract_url_signals(url))


def _pick_rp(idp: str | None, *candidates: str | None) -> str | None:
    # First candidate that differs from the IdP; otherwise the first present one
    present = [c for c in candidates if c]
    for candidate in present:
        if candidate != idp:
            return candidate
    return present[0] if present else None


def infer_relationship(
    url: str | None,
    opener_domain: str | None = None,
    context: SessionContext | None = None,
) -> RelationshipInference:
    """
    Combine the inference paths into candidates and relationship signals.

    Signals:
        - REDIRECT_URI_MATCH: the redirect parameter names a domain the
          session context corroborates (the opener, or a domain already in
          the tab lineage)
        - OPENER_LINK: the opener's last domain differs from the current one
        - TEMPORAL_CHAIN: RP -> IdP -> RP found in the session events

    The opener is only an RP candidate, and OPENER_LINK / TEMPORAL_CHAIN are
    only emitted, when the page itself acts as an IdP (see acts_as_idp).
    A link followed into a new tab is not a login.
    """
    idp = infer_idp_domain(url)
    redirect_rp = infer_rp_from_redirect_uri(url)
    opener_rp = etld_plus_one(opener_domain)
    idp_page = idp is not None and acts_as_idp(url)

    rp = _pick_rp(idp, redirect_rp, opener_rp if idp_page else None)
    candidate = RelationshipCandidate(rp_domain=rp, idp_domain=idp)

    signals: list[SignalCode] = []
    if redirect_rp and redirect_rp != idp:
        seen = set(context.domains()) if context else set()
        if redirect_rp == opener_rp or redirect_rp in seen:
            signals.append(SignalCode.REDIRECT_URI_MATCH)
    if idp_page and opener_rp and opener_rp != idp:
        signals.append(SignalCode.OPENER_LINK)

    roundtrip = (
        idp_page
        and candidate.is_distinct_pair
        and check_temporal_roundtrip(rp, idp, context)
    )
    if roundtrip:
        signals.append(SignalCode.TEMPORAL_CHAIN)

    return RelationshipInference(
        candidate=candidate,
        redirect_rp=redirect_rp,
        opener_rp=opener_rp,
        roundtrip=roundtrip,
        signals=tuple(signals),
    )


class RelationshipInferrer:
    """
    Session-aware RP/IdP inference.

    The session store is an injected collaborator; this class never reaches
    for ambient state.
    """

    def __init__(self, sessions: SessionContextProvider) -> None:
        self.sessions = sessions

    async def _opener_id(self, tab_id: int | None, opener_tab_id: int | None) -> int | None:
        recorded = await self.sessions.get_tab_opener_id(tab_id) if tab_id is not None else None
        if recorded is not None:
            return recorded
        # Reported with the navigation but not recorded yet (new tab)
        if opener_tab_id is not None and opener_tab_id != tab_id:
            return opener_tab_id
        return None

    async def infer_rp_from_opener(
        self, tab_id: int | None, opener_tab_id: int | None = None
    ) -> str | None:
        """The opener tab's last-visited domain, if the tab has an opener."""
        opener_id = await self._opener_id(tab_id, opener_tab_id)
        if opener_id is None:
            return None
        return await self.sessions.get_last_domain_for_tab(opener_id)

    async def _session_context(
        self, tab_id: int | None, opener_tab_id: int | None
    ) -> SessionContext | None:
        context = await self.sessions.get_session_context(tab_id) if tab_id is not None else None
        if context is None:
            # A tab with no lineage of its own starts from its opener's
            opener_id = await self._opener_id(tab_id, opener_tab_id)
            if opener_id is not None:
                context = await self.sessions.get_session_context(opener_id)
        return context

    async def check_temporal_roundtrip(
        self, tab_id: int | None, rp_domain: str | None, idp_domain: str | None
    ) -> bool:
        if tab_id is None or not rp_domain or not idp_domain or rp_domain == idp_domain:
            return False
        context = await self.sessions.get_session_context(tab_id)
        return check_temporal_roundtrip(rp_domain, idp_domain, context)

    async def infer(
        self,
        url: str | None,
        tab_id: int | None,
        opener_tab_id: int | None = None,
    ) -> RelationshipInference:
        """
        Run all inference paths for a page in a tab.

        `opener_tab_id` is the opener reported with the navigation; it is
        used when the session store has not recorded one for the tab yet.
        Nothing is written to the session store.

        Side Effects:
            - Reads the session store (opener, last domain, session context)
            - Logs the derived domains at debug level (never the URL)
        """
        opener_domain = await self.infer_rp_from_opener(tab_id, opener_tab_id)
        context = await self._session_context(tab_id, opener_tab_id)
        inference = infer_relationship(url, opener_domain=opener_domain, context=context)

        if inference.signals:
            logger.debug(
                "Relationship rp=%s idp=%s signals=%s",
                inference.rp_domain,
                inference.idp_domain,
                [s.value for s in inference.signals],
            )
        return inference
