"""
Session Store

Tab lineage for RP/IdP inference: which tab opened which, and the ordered
navigation events of each tab's lineage.

Privacy: only eTLD+1 domains are recorded. URLs are reduced on the way in
and never stored.
"""

from __future__ import annotations

from collections import deque
from typing import Protocol, runtime_checkable

from pdtm.config import SESSION_MAX_EVENTS
from pdtm.inference.types import SessionContext, SessionEvent
from pdtm.utils.domain import domain_of


@runtime_checkable
class SessionContextProvider(Protocol):
    """Read side of the session store consumed by inference."""

    async def get_tab_opener_id(self, tab_id: int) -> int | None: ...

    async def get_last_domain_for_tab(self, tab_id: int) -> str | None: ...

    async def get_session_context(self, tab_id: int) -> SessionContext | None: ...


@runtime_checkable
class SessionRecorder(Protocol):
    """Write side of the session store, fed by the navigation sensor."""

    def record_tab_opened(self, tab_id: int, opener_tab_id: int | None) -> None: ...

    def record_navigation(
        self, tab_id: int, url: str, timestamp: int, event_type: str = ...
    ) -> SessionEvent | None: ...

    def remove_tab(self, tab_id: int) -> None: ...


class InMemorySessionStore:
    """
    Per-process session store.

    A child tab starts with a copy of its opener's recent events, so a login
    popup sees the RP page that opened it. Each lineage keeps at most
    `max_events` events, newest last.
    """

    def __init__(self, max_events: int = SESSION_MAX_EVENTS) -> None:
        self.max_events = max_events
        self._openers: dict[int, int] = {}
        self._events: dict[int, deque[SessionEvent]] = {}

    def record_tab_opened(self, tab_id: int, opener_tab_id: int | None) -> None:
        """
        Register a new tab and its opener.

        Side Effects:
            - Copies the opener's lineage into the new tab
        """
        if opener_tab_id is None or opener_tab_id == tab_id:
            self._events.setdefault(tab_id, deque(maxlen=self.max_events))
            return
        self._openers[tab_id] = opener_tab_id
        inherited = self._events.get(opener_tab_id, ())
        self._events[tab_id] = deque(inherited, maxlen=self.max_events)

    def record_navigation(
        self,
        tab_id: int,
        url: str,
        timestamp: int,
        event_type: str = "page_view",
    ) -> SessionEvent | None:
        """Append a navigation to the tab lineage. Non-web URLs are ignored."""
        domain = domain_of(url)
        if domain is None:
            return None
        event = SessionEvent(domain=domain, timestamp=timestamp, event_type=event_type)
        self._events.setdefault(tab_id, deque(maxlen=self.max_events)).append(event)
        return event

    def remove_tab(self, tab_id: int) -> None:
        self._events.pop(tab_id, None)
        self._openers.pop(tab_id, None)

    def clear(self) -> None:
        self._openers.clear()
        self._events.clear()

    async def get_tab_opener_id(self, tab_id: int) -> int | None:
        return self._openers.get(tab_id)

    async def get_last_domain_for_tab(self, tab_id: int) -> str | None:
        events = self._events.get(tab_id)
        return events[-1].domain if events else None

    async def get_session_context(self, tab_id: int) -> SessionContext | None:
        events = self._events.get(tab_id)
        if events is None:
            return None
        return SessionContext.from_events(tab_id, list(events))
