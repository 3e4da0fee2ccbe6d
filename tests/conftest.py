"""
Pytest configuration for PDTM tests

Provides fixtures shared across unit and integration tests
"""

from __future__ import annotations

from pathlib import Path

import pytest

from pdtm.observability.telemetry import reset_counters
from pdtm.service import ActivityMonitorService
from pdtm.storage.memory import MemoryStorage
from pdtm.storage.session_store import InMemorySessionStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Fixed "now" (2023-11-14T22:13:20Z) so timestamps and retention are deterministic
NOW_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def _reset_telemetry():
    """Counters are process-global; start every test from zero"""
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def service(storage: MemoryStorage, sessions: InMemorySessionStore) -> ActivityMonitorService:
    """Service over in-memory collaborators with a frozen clock"""
    return ActivityMonitorService(storage=storage, sessions=sessions, clock=lambda: NOW_MS)
