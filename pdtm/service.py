"""Activity monitor service - the coordinator between sensors, core and storage.

Pipeline per navigation:
    filter -> dedupe -> store raw event -> domain state -> RP/IdP inference
    -> classify -> activity state -> score -> management state -> retention

Every read-modify-write runs on the SerialUpdateQueue, and each one commits
with a single storage.set(): a failure before the write leaves stored state
exactly as it was.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from pdtm.classification.classifier import ActivityEstimation, classify
from pdtm.config import API_MAX_SIGNALS_PER_MESSAGE, BURST_DEDUPE_MS
from pdtm.exceptions import StorageError
from pdtm.inference.rp_inference import RelationshipInferrer
from pdtm.inference.types import RelationshipInference
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import counter, log_event
from pdtm.risk.risk_model import score as risk_score
from pdtm.risk.state_mapper import ManagementState, decide
from pdtm.runtime.update_queue import SerialUpdateQueue
from pdtm.storage.activity_state import apply_activity_estimation, get_activity_state
from pdtm.storage.backend import StorageBackend, load_state
from pdtm.storage.domain_state import apply_domain_visit, get_domain_state, visit_count
from pdtm.storage.keys import (
    ACTIVITY_STATE_KEY,
    DOMAIN_STATE_KEY,
    EVENTS_KEY,
    RISK_STATE_KEY,
    SETTINGS_KEY,
    USER_OVERRIDES_KEY,
)
from pdtm.storage.models import AppSettings, RawEvent, UserOverride
from pdtm.storage.retention import CleanupStats, perform_retention_check
from pdtm.storage.risk_state import (
    apply_risk_record,
    build_risk_record,
    get_risk_record,
    ranked_domains,
)
from pdtm.storage.session_store import SessionContextProvider, SessionRecorder
from pdtm.storage.user_overrides import apply_user_override, get_override, is_pinned
from pdtm.utils.clock import now_ms
from pdtm.utils.domain import domain_of

logger = get_logger(__name__)


@dataclass(frozen=True)
class NavigationEvent:
    """A completed navigation reported by the host sensor."""

    url: str
    tab_id: int | None = None
    frame_id: int = 0  # 0 = main frame
    opener_tab_id: int | None = None
    timestamp: int | None = None


@dataclass(frozen=True)
class ActivitySignalMessage:
    """Content-probe report: {url, signals, timestamp} plus the sending tab."""

    url: str
    signals: Sequence[str] = ()
    timestamp: int | None = None
    tab_id: int | None = None
    sender_url: str | None = None


@dataclass(frozen=True)
class Assessment:
    """Everything the pipeline concluded about one page."""

    domain: str
    estimation: ActivityEstimation
    relationship: RelationshipInference
    score: int
    management_state: ManagementState
    visit_count: int = 0
    pinned: bool = False

    def to_dict(self) -> dict[str, Any]:
        linked = self.relationship
        return {
            "domain": self.domain,
            **self.estimation.to_dict(),
            "score": self.score,
            "management_state": self.management_state.value,
            "rp_domain": linked.rp_domain if linked.has_relationship else None,
            "idp_domain": linked.idp_domain if linked.has_relationship else None,
            "relationship_signals": [s.value for s in self.relationship.signals],
            "visit_count": self.visit_count,
            "pinned": self.pinned,
        }


@dataclass(frozen=True)
class DomainDetail:
    domain: str
    state: dict[str, Any] | None = None
    activity: dict[str, Any] | None = None
    risk: dict[str, Any] | None = None
    override: dict[str, Any] | None = None


def assess(
    domain: str,
    estimation: ActivityEstimation,
    relationship: RelationshipInference,
    visits: int,
    pinned: bool,
) -> Assessment:
    """Score an estimation and decide its management state."""
    value = risk_score(estimation.level, estimation.confidence)
    state = decide(
        estimation.level,
        value,
        estimation.confidence,
        has_relationship=relationship.has_relationship,
        visit_count=visits,
        is_pinned=pinned,
    )
    return Assessment(
        domain=domain,
        estimation=estimation,
        relationship=relationship,
        score=value,
        management_state=state,
        visit_count=visits,
        pinned=pinned,
    )


class ActivityMonitorService:
    """
    Coordinates classification and state updates for one profile.

    Collaborators are injected: a StorageBackend for persisted state and a
    session store for tab lineage. If the session store also implements
    SessionRecorder, navigations are recorded into it.
    """

    def __init__(
        self,
        storage: StorageBackend,
        sessions: SessionContextProvider,
        queue: SerialUpdateQueue | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.storage = storage
        self.sessions = sessions
        self.queue = queue or SerialUpdateQueue()
        self.inferrer = RelationshipInferrer(sessions)
        self.clock = clock

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def handle_navigation(self, event: NavigationEvent) -> Assessment | None:
        """
        Process a completed navigation.

        Returns:
            The page's Assessment, or None when the event was filtered
            (sub-frame, non-web URL, collection disabled, burst duplicate)

        Raises:
            StorageError: If reading or committing state failed (nothing written)
        """
        if event.frame_id != 0:
            return None
        domain = domain_of(event.url)
        if domain is None:
            return None

        assessment = await self.queue.submit(self._process_navigation, event, domain)

        if assessment is not None:
            try:
                await self.queue.submit(
                    perform_retention_check, self.storage, False, self.clock()
                )
            except StorageError as exc:
                logger.warning("Retention check after navigation failed: %s", exc)
        return assessment

    async def _process_navigation(self, event: NavigationEvent, domain: str) -> Assessment | None:
        timestamp = event.timestamp if event.timestamp is not None else self.clock()

        state = await load_state(
            self.storage,
            EVENTS_KEY,
            SETTINGS_KEY,
            DOMAIN_STATE_KEY,
            ACTIVITY_STATE_KEY,
            RISK_STATE_KEY,
            USER_OVERRIDES_KEY,
        )
        settings = AppSettings.model_validate(state[SETTINGS_KEY])
        if not settings.collection_enabled:
            return None

        events: list[dict[str, Any]] = state[EVENTS_KEY]
        if events:
            newest = events[0]
            within_burst = timestamp - newest.get("ts", 0) < BURST_DEDUPE_MS
            if newest.get("domain") == domain and within_burst:
                counter("navigation.burst_deduped")
                return None

        raw = RawEvent(ts=timestamp, domain=domain)
        updated_events = [raw.to_storage(), *events][: settings.max_events]

        domain_map, domain_record = apply_domain_visit(state[DOMAIN_STATE_KEY], domain, timestamp)

        relationship = await self.inferrer.infer(event.url, event.tab_id, event.opener_tab_id)
        estimation = classify(event.url, relationship.signals)

        activity_map, _ = apply_activity_estimation(
            state[ACTIVITY_STATE_KEY], domain, estimation, timestamp
        )
        assessment = assess(
            domain,
            estimation,
            relationship,
            visits=domain_record.visit_count_total,
            pinned=is_pinned(state[USER_OVERRIDES_KEY], domain),
        )
        risk_map = apply_risk_record(
            state[RISK_STATE_KEY],
            domain,
            build_risk_record(
                estimation, assessment.score, assessment.management_state, timestamp, relationship
            ),
        )

        await self.storage.set(
            {
                EVENTS_KEY: updated_events,
                DOMAIN_STATE_KEY: domain_map,
                ACTIVITY_STATE_KEY: activity_map,
                RISK_STATE_KEY: risk_map,
            }
        )

        # Session lineage only changes once the commit has succeeded
        if event.tab_id is not None and isinstance(self.sessions, SessionRecorder):
            if (
                event.opener_tab_id is not None
                and await self.sessions.get_tab_opener_id(event.tab_id) is None
            ):
                self.sessions.record_tab_opened(event.tab_id, event.opener_tab_id)
            self.sessions.record_navigation(event.tab_id, event.url, timestamp)

        logger.debug(
            "Navigation %s level=%s score=%d state=%s",
            domain,
            estimation.level.value,
            assessment.score,
            assessment.management_state.value,
        )
        return assessment

    def handle_tab_closed(self, tab_id: int) -> None:
        """Forget a closed tab's lineage. Tabs it opened keep their own copy."""
        if isinstance(self.sessions, SessionRecorder):
            self.sessions.remove_tab(tab_id)

    # ------------------------------------------------------------------
    # Content signals
    # ------------------------------------------------------------------

    async def handle_activity_signal(self, message: ActivitySignalMessage) -> Assessment | None:
        """
        Re-classify a page with content-probe signals.

        The domain comes from the sending tab's URL (falling back to the
        payload URL); unknown signal codes are dropped by the classifier.

        Returns:
            The Assessment, or None when the sender has no web domain or
            collection is disabled
        """
        domain = domain_of(message.sender_url or message.url)
        if domain is None:
            return None
        return await self.queue.submit(self._process_activity_signal, message, domain)

    async def _process_activity_signal(
        self, message: ActivitySignalMessage, domain: str
    ) -> Assessment | None:
        timestamp = message.timestamp if message.timestamp is not None else self.clock()

        state = await load_state(
            self.storage,
            SETTINGS_KEY,
            DOMAIN_STATE_KEY,
            ACTIVITY_STATE_KEY,
            RISK_STATE_KEY,
            USER_OVERRIDES_KEY,
        )
        if not AppSettings.model_validate(state[SETTINGS_KEY]).collection_enabled:
            return None

        relationship = await self.inferrer.infer(message.url, message.tab_id)
        signals = list(message.signals)[:API_MAX_SIGNALS_PER_MESSAGE]
        estimation = classify(message.url, [*signals, *relationship.signals])

        activity_map, _ = apply_activity_estimation(
            state[ACTIVITY_STATE_KEY], domain, estimation, timestamp
        )
        assessment = assess(
            domain,
            estimation,
            relationship,
            visits=visit_count(state[DOMAIN_STATE_KEY], domain),
            pinned=is_pinned(state[USER_OVERRIDES_KEY], domain),
        )
        risk_map = apply_risk_record(
            state[RISK_STATE_KEY],
            domain,
            build_risk_record(
                estimation, assessment.score, assessment.management_state, timestamp, relationship
            ),
        )

        await self.storage.set({ACTIVITY_STATE_KEY: activity_map, RISK_STATE_KEY: risk_map})

        log_event(
            "activity_signal.processed",
            domain=domain,
            level=estimation.level.value,
            reasons=[reason.value for reason in estimation.reasons],
        )
        return assessment

    # ------------------------------------------------------------------
    # Cleanup and overrides
    # ------------------------------------------------------------------

    async def run_cleanup(self, force: bool = False) -> CleanupStats | None:
        """Queue a retention pass. None means a non-forced pass was not due."""
        return await self.queue.submit(
            perform_retention_check, self.storage, force, self.clock()
        )

    async def set_user_override(self, domain: str, **fields: Any) -> UserOverride:
        """
        Update a domain's override and refresh its management state.

        Pinning takes effect immediately (PINNED); unpinning re-runs the
        decision list on the stored risk record.

        Raises:
            ValueError: On unknown override fields
        """
        return await self.queue.submit(self._process_override, domain, fields)

    async def _process_override(self, domain: str, fields: dict[str, Any]) -> UserOverride:
        timestamp = self.clock()
        state = await load_state(self.storage, USER_OVERRIDES_KEY, RISK_STATE_KEY, DOMAIN_STATE_KEY)

        overrides, override = apply_user_override(
            state[USER_OVERRIDES_KEY], domain, fields, timestamp
        )
        items: dict[str, Any] = {USER_OVERRIDES_KEY: overrides}

        record = get_risk_record(state[RISK_STATE_KEY], domain)
        if record is not None:
            new_state = decide(
                record.level,
                record.score,
                record.confidence,
                has_relationship=record.rp_domain is not None,
                visit_count=visit_count(state[DOMAIN_STATE_KEY], domain),
                is_pinned=override.pinned,
            )
            if new_state != record.management_state:
                items[RISK_STATE_KEY] = apply_risk_record(
                    state[RISK_STATE_KEY],
                    domain,
                    record.model_copy(update={"management_state": new_state}),
                )

        await self.storage.set(items)
        log_event("override.updated", domain=domain, fields=sorted(fields))
        return override

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def evaluate(
        self,
        url: str,
        signals: Iterable[str] = (),
        tab_id: int | None = None,
    ) -> Assessment | None:
        """Dry run of the full pipeline for a URL. Reads state, never writes."""
        domain = domain_of(url)
        if domain is None:
            return None

        state = await load_state(self.storage, DOMAIN_STATE_KEY, USER_OVERRIDES_KEY)
        relationship = await self.inferrer.infer(url, tab_id)
        estimation = classify(url, [*signals, *relationship.signals])
        return assess(
            domain,
            estimation,
            relationship,
            visits=visit_count(state[DOMAIN_STATE_KEY], domain),
            pinned=is_pinned(state[USER_OVERRIDES_KEY], domain),
        )

    async def list_domains(
        self,
        limit: int | None = None,
        states: Iterable[ManagementState] | None = None,
    ) -> list[dict[str, Any]]:
        """Risk records joined with overrides, highest score first."""
        state = await load_state(self.storage, RISK_STATE_KEY, USER_OVERRIDES_KEY)
        wanted = set(states) if states is not None else None

        results: list[dict[str, Any]] = []
        for domain, record in ranked_domains(state[RISK_STATE_KEY]):
            if wanted is not None and record.management_state not in wanted:
                continue
            override = get_override(state[USER_OVERRIDES_KEY], domain)
            results.append(
                {
                    "domain": domain,
                    **record.to_storage(),
                    "override": override.to_storage() if override else None,
                }
            )
            if limit is not None and len(results) >= limit:
                break
        return results

    async def get_domain(self, domain: str) -> DomainDetail | None:
        """Everything stored about a domain, or None if it has never been seen."""
        state = await load_state(
            self.storage, DOMAIN_STATE_KEY, ACTIVITY_STATE_KEY, RISK_STATE_KEY, USER_OVERRIDES_KEY
        )
        domain_record = get_domain_state(state[DOMAIN_STATE_KEY], domain)
        activity = get_activity_state(state[ACTIVITY_STATE_KEY], domain)
        risk = get_risk_record(state[RISK_STATE_KEY], domain)
        override = get_override(state[USER_OVERRIDES_KEY], domain)

        if not any((domain_record, activity, risk, override)):
            return None
        return DomainDetail(
            domain=domain,
            state=domain_record.to_storage() if domain_record else None,
            activity=activity.to_storage() if activity else None,
            risk=risk.to_storage() if risk else None,
            override=override.to_storage() if override else None,
        )

    async def close(self) -> None:
        await self.queue.close()
