"""
End-to-end tests for ActivityMonitorService over in-memory collaborators.

Covers the navigation pipeline (filter, dedupe, inference, classification,
scoring, management state), content signals, overrides, the dry-run path
and storage-failure atomicity.
"""

from __future__ import annotations

import asyncio

import pytest

from pdtm.exceptions import StorageError
from pdtm.observability.telemetry import get_counter
from pdtm.risk.state_mapper import ManagementState
from pdtm.service import ActivityMonitorService, ActivitySignalMessage, NavigationEvent
from pdtm.signals.vocabulary import ActivityLevel, SignalCode
from pdtm.storage.keys import (
    ACTIVITY_STATE_KEY,
    DOMAIN_STATE_KEY,
    EVENTS_KEY,
    RISK_STATE_KEY,
    SETTINGS_KEY,
    USER_OVERRIDES_KEY,
)
from pdtm.storage.memory import MemoryStorage
from pdtm.storage.retention import DAY_MS
from pdtm.storage.session_store import InMemorySessionStore

NOW = 1_700_000_000_000

OAUTH_URL = (
    "https://accounts.google.com/o/oauth2/auth"
    "?client_id=abc&redirect_uri=https%3A%2F%2Fapp.example.org%2Fcallback"
)


def _nav(url: str, offset_ms: int = 0, **kwargs) -> NavigationEvent:
    return NavigationEvent(url=url, timestamp=NOW + offset_ms, **kwargs)


class TestNavigation:
    def test_federated_login_via_popup(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://app.example.org/", tab_id=1))
            result = await service.handle_navigation(
                _nav(OAUTH_URL, 5_000, tab_id=2, opener_tab_id=1)
            )
            await service.close()
            return result

        result = asyncio.run(scenario())

        assert result.domain == "google.com"
        assert result.estimation.level is ActivityLevel.ACCOUNT
        assert result.estimation.confidence == 1.0
        assert result.score == 30
        assert result.management_state is ManagementState.SUGGESTED
        assert result.relationship.rp_domain == "example.org"
        assert set(result.relationship.signals) == {
            SignalCode.REDIRECT_URI_MATCH,
            SignalCode.OPENER_LINK,
        }

        risk = service.storage.snapshot()[RISK_STATE_KEY]["google.com"]
        assert risk["rp_domain"] == "example.org"
        assert risk["idp_domain"] == "google.com"
        assert risk["management_state"] == "suggested"

    def test_repeated_login_is_a_roundtrip(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://app.example.org/", tab_id=1))
            await service.handle_navigation(_nav(OAUTH_URL, 5_000, tab_id=2, opener_tab_id=1))
            await service.handle_navigation(
                _nav("https://app.example.org/callback?code=x", 10_000, tab_id=2)
            )
            result = await service.handle_navigation(_nav(OAUTH_URL, 60_000, tab_id=2))
            await service.close()
            return result

        result = asyncio.run(scenario())
        assert result.relationship.roundtrip
        assert SignalCode.TEMPORAL_CHAIN in result.relationship.signals

    def test_plain_page_view(self, service):
        result = asyncio.run(service.handle_navigation(_nav("https://news.example.com/today")))

        assert result.estimation.level is ActivityLevel.VIEW
        assert result.estimation.confidence == 0.0
        assert result.estimation.reasons == ()
        assert result.score == 0
        assert result.management_state is ManagementState.NONE

        data = service.storage.snapshot()
        assert data[EVENTS_KEY] == [{"ts": NOW, "domain": "example.com", "type": "page_view"}]
        assert data[DOMAIN_STATE_KEY]["example.com"]["visit_count_total"] == 1
        assert data[ACTIVITY_STATE_KEY]["example.com"]["counts_by_level"]["view"] == 1

    def test_link_opened_in_new_tab_is_a_view(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://news.ycombinator.com/", tab_id=1))
            result = await service.handle_navigation(
                _nav("https://en.wikipedia.org/wiki/Python", 5_000, tab_id=2, opener_tab_id=1)
            )
            await service.close()
            return result

        result = asyncio.run(scenario())

        assert result.domain == "wikipedia.org"
        assert result.estimation.level is ActivityLevel.VIEW
        assert result.estimation.confidence == 0.0
        assert result.relationship.signals == ()
        assert not result.relationship.has_relationship
        assert result.management_state is ManagementState.NONE

        data = service.storage.snapshot()
        assert data[ACTIVITY_STATE_KEY]["wikipedia.org"]["counts_by_level"]["view"] == 1
        assert data[RISK_STATE_KEY]["wikipedia.org"]["rp_domain"] is None

    @pytest.mark.parametrize(
        "event",
        [
            NavigationEvent(url="https://example.com/", frame_id=3, timestamp=NOW),
            NavigationEvent(url="chrome://newtab/", timestamp=NOW),
            NavigationEvent(url="not a url", timestamp=NOW),
        ],
    )
    def test_filtered_events_touch_nothing(self, service, event):
        assert asyncio.run(service.handle_navigation(event)) is None
        assert service.storage.set_calls == 0
        assert service.storage.get_calls == 0

    def test_burst_dedupe(self, service):
        async def scenario():
            first = await service.handle_navigation(_nav("https://example.com/a"))
            burst = await service.handle_navigation(_nav("https://www.example.com/b", 500))
            later = await service.handle_navigation(_nav("https://example.com/c", 2_500))
            return first, burst, later

        first, burst, later = asyncio.run(scenario())

        assert first is not None
        assert burst is None
        assert later is not None
        assert get_counter("navigation.burst_deduped") == 1
        assert len(service.storage.snapshot()[EVENTS_KEY]) == 2

    def test_collection_disabled(self, sessions):
        storage = MemoryStorage({SETTINGS_KEY: {"collectionEnabled": False, "maxEvents": 10}})
        service = ActivityMonitorService(storage, sessions, clock=lambda: NOW)

        assert asyncio.run(service.handle_navigation(_nav("https://example.com/login"))) is None
        assert storage.set_calls == 0
        assert EVENTS_KEY not in storage.snapshot()

    def test_event_log_is_capped(self, sessions):
        storage = MemoryStorage({SETTINGS_KEY: {"collectionEnabled": True, "maxEvents": 3}})
        service = ActivityMonitorService(storage, sessions, clock=lambda: NOW)

        async def scenario():
            for i in range(5):
                await service.handle_navigation(_nav(f"https://site{i}.com/", i * 10))

        asyncio.run(scenario())
        events = storage.snapshot()[EVENTS_KEY]
        assert [e["domain"] for e in events] == ["site4.com", "site3.com", "site2.com"]

    def test_one_write_per_navigation(self, service):
        async def scenario():
            # First navigation also runs the (due) retention pass
            await service.handle_navigation(_nav("https://example.com/"))
            before = service.storage.set_calls
            await service.handle_navigation(_nav("https://other.org/", 10_000))
            return service.storage.set_calls - before

        assert asyncio.run(scenario()) == 1

    def test_storage_failure_leaves_state_unchanged(self, service):
        storage = service.storage

        async def scenario():
            await service.handle_navigation(_nav("https://example.com/"))
            snapshot = storage.snapshot()

            storage.fail_next("set")
            with pytest.raises(StorageError):
                await service.handle_navigation(_nav("https://shop.other.org/checkout", 10_000))
            assert storage.snapshot() == snapshot

            # The queue keeps going after a failed operation
            retry = await service.handle_navigation(_nav("https://shop.other.org/checkout", 20_000))
            return retry

        retry = asyncio.run(scenario())
        assert retry.estimation.level is ActivityLevel.TRANSACTION
        assert "other.org" in storage.snapshot()[RISK_STATE_KEY]

    def test_failed_commit_records_no_lineage(self, service):
        storage, sessions = service.storage, service.sessions

        async def scenario():
            await service.handle_navigation(_nav("https://app.example.org/", tab_id=1))

            storage.fail_next("set")
            with pytest.raises(StorageError):
                await service.handle_navigation(_nav(OAUTH_URL, 5_000, tab_id=2, opener_tab_id=1))
            assert await sessions.get_tab_opener_id(2) is None
            assert await sessions.get_session_context(2) is None

            retry = await service.handle_navigation(
                _nav(OAUTH_URL, 10_000, tab_id=2, opener_tab_id=1)
            )
            assert await sessions.get_tab_opener_id(2) == 1
            return retry

        retry = asyncio.run(scenario())
        assert retry.management_state is ManagementState.SUGGESTED
        assert SignalCode.OPENER_LINK in retry.relationship.signals

    def test_closed_tab_lineage_is_dropped(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://app.example.org/", tab_id=1))
            service.handle_tab_closed(1)
            assert await service.sessions.get_last_domain_for_tab(1) is None
            return await service.handle_navigation(
                _nav(OAUTH_URL, 5_000, tab_id=2, opener_tab_id=1)
            )

        result = asyncio.run(scenario())
        assert result.relationship.opener_rp is None
        assert result.relationship.signals == ()

    def test_storage_read_failure(self, service):
        service.storage.fail_next("get")
        with pytest.raises(StorageError):
            asyncio.run(service.handle_navigation(_nav("https://example.com/")))
        assert service.storage.set_calls == 0

    def test_frequent_visits_need_review(self, service):
        async def scenario():
            result = None
            for i in range(51):
                result = await service.handle_navigation(
                    _nav("https://example.com/", i * 10_000)
                )
            return result

        result = asyncio.run(scenario())
        assert result.visit_count == 51
        assert result.management_state is ManagementState.NEEDS_REVIEW

    def test_pinned_domain(self, sessions):
        storage = MemoryStorage({USER_OVERRIDES_KEY: {"example.com": {"pinned": True}}})
        service = ActivityMonitorService(storage, sessions, clock=lambda: NOW)

        result = asyncio.run(service.handle_navigation(_nav("https://example.com/")))
        assert result.pinned
        assert result.management_state is ManagementState.PINNED


class TestActivitySignals:
    def test_content_signals_reclassify_the_sender(self, service):
        message = ActivitySignalMessage(
            url="https://shop.example.com/",
            signals=["dom_payment", "not_a_signal"],
            timestamp=NOW,
            sender_url="https://shop.example.com/",
        )
        result = asyncio.run(service.handle_activity_signal(message))

        assert result.domain == "example.com"
        assert result.estimation.level is ActivityLevel.TRANSACTION
        assert result.estimation.confidence == pytest.approx(0.1)
        assert result.estimation.reasons == (SignalCode.DOM_PAYMENT,)
        assert result.score == 7
        assert result.management_state is ManagementState.NONE
        assert get_counter("classifier.unknown_signal") == 1

        data = service.storage.snapshot()
        assert data[ACTIVITY_STATE_KEY]["example.com"]["last_transaction_signal_ts"] == NOW
        # Signals do not count as visits
        assert DOMAIN_STATE_KEY not in data

    def test_sender_without_web_domain(self, service):
        message = ActivitySignalMessage(url="about:blank", signals=["dom_password"])
        assert asyncio.run(service.handle_activity_signal(message)) is None

    def test_collection_disabled(self, sessions):
        storage = MemoryStorage({SETTINGS_KEY: {"collectionEnabled": False}})
        service = ActivityMonitorService(storage, sessions, clock=lambda: NOW)
        message = ActivitySignalMessage(url="https://example.com/", signals=["dom_password"])

        assert asyncio.run(service.handle_activity_signal(message)) is None
        assert storage.set_calls == 0

    def test_signal_only_domain_ages_out(self, storage, sessions):
        now = [NOW]
        service = ActivityMonitorService(storage, sessions, clock=lambda: now[0])
        message = ActivitySignalMessage(
            url="https://pay.stale.com/", signals=["dom_payment"], timestamp=NOW
        )

        async def scenario():
            await service.handle_activity_signal(message)
            now[0] = NOW + 400 * DAY_MS
            return await service.run_cleanup(force=True)

        stats = asyncio.run(scenario())

        assert stats.domains_pruned == 1
        data = storage.snapshot()
        assert "stale.com" not in data[ACTIVITY_STATE_KEY]
        assert "stale.com" not in data[RISK_STATE_KEY]


class TestOverrides:
    def test_pin_and_unpin(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://example.com/login"))
            pinned = await service.set_user_override("example.com", pinned=True)
            after_pin = service.storage.snapshot()[RISK_STATE_KEY]["example.com"]
            await service.set_user_override("example.com", pinned=False)
            after_unpin = service.storage.snapshot()[RISK_STATE_KEY]["example.com"]
            return pinned, after_pin, after_unpin

        pinned, after_pin, after_unpin = asyncio.run(scenario())

        assert pinned.pinned
        assert pinned.updated_ts == NOW
        assert after_pin["management_state"] == "pinned"
        # url_login alone: ACCOUNT 0.3 -> score 9 -> none
        assert after_unpin["management_state"] == "none"

    def test_concurrent_updates_are_serialized(self, service):
        async def scenario():
            await asyncio.gather(
                service.set_user_override("example.com", pinned=True),
                service.set_user_override("example.com", notes="work"),
                service.set_user_override("example.com", category="email"),
            )
            return service.storage.snapshot()[USER_OVERRIDES_KEY]["example.com"]

        stored = asyncio.run(scenario())
        assert stored["pinned"] is True
        assert stored["notes"] == "work"
        assert stored["category"] == "email"

    def test_override_for_unseen_domain(self, service):
        override = asyncio.run(service.set_user_override("new.org", notes="later"))
        assert override.notes == "later"
        assert RISK_STATE_KEY not in service.storage.snapshot()

    def test_unknown_field(self, service):
        with pytest.raises(ValueError):
            asyncio.run(service.set_user_override("example.com", score=1))


class TestReadSide:
    def test_evaluate_never_writes(self, service):
        result = asyncio.run(service.evaluate("https://example.com/checkout", ["dom_payment"]))

        assert result.estimation.level is ActivityLevel.TRANSACTION
        assert result.estimation.confidence == pytest.approx(0.4)
        assert result.score == 28
        assert service.storage.set_calls == 0

    def test_evaluate_non_web_url(self, service):
        assert asyncio.run(service.evaluate("ftp://example.com/")) is None

    def test_list_and_get_domains(self, service):
        async def scenario():
            await service.handle_navigation(_nav("https://news.example.com/"))
            await service.handle_navigation(_nav("https://shop.other.org/checkout", 10_000))
            await service.handle_navigation(_nav("https://github.com/login", 20_000))
            everything = await service.list_domains()
            top = await service.list_domains(limit=1)
            none_only = await service.list_domains(states=[ManagementState.NONE])
            detail = await service.get_domain("other.org")
            missing = await service.get_domain("never.org")
            return everything, top, none_only, detail, missing

        everything, top, none_only, detail, missing = asyncio.run(scenario())

        assert [d["domain"] for d in everything] == ["other.org", "github.com", "example.com"]
        assert [d["domain"] for d in top] == ["other.org"]
        assert {d["domain"] for d in none_only} == {"other.org", "github.com", "example.com"}
        assert detail.risk["level"] == "transaction"
        assert detail.state["visit_count_total"] == 1
        assert detail.override is None
        assert missing is None

    def test_cleanup_through_service(self, service):
        async def scenario():
            return await service.run_cleanup(force=True)

        stats = asyncio.run(scenario())
        assert stats.events_removed == 0
        assert stats.domains_pruned == 0


def test_sessions_are_injected(storage):
    sessions = InMemorySessionStore()
    service = ActivityMonitorService(storage, sessions, clock=lambda: NOW)
    asyncio.run(service.handle_navigation(_nav("https://example.com/", tab_id=9)))
    assert asyncio.run(sessions.get_last_domain_for_tab(9)) == "example.com"
