"""Centralized configuration for the PDTM backend.

Typed constants for collection, session tracking, retention, storage and
the API. Environment variable overrides use safe defaults so the service
starts without extra env configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

# --- App ---
APP_VERSION: str = "0.4.0"
APP_ENV: str = os.getenv("PDTM_ENV", "development")

# --- Collection ---
MAX_EVENTS_DEFAULT: int = int(os.getenv("PDTM_MAX_EVENTS", "1000"))
BURST_DEDUPE_MS: int = int(os.getenv("PDTM_BURST_DEDUPE_MS", "2000"))
COLLECTION_ENABLED_DEFAULT: bool = os.getenv("PDTM_COLLECTION_ENABLED", "true").lower() == "true"

# --- Session tracking ---
SESSION_MAX_EVENTS: int = int(os.getenv("PDTM_SESSION_MAX_EVENTS", "50"))

# --- Retention ---
RAW_EVENTS_TTL_DAYS: int = int(os.getenv("PDTM_RAW_EVENTS_TTL_DAYS", "30"))
PRUNE_INACTIVE_DOMAINS_DAYS: int = int(os.getenv("PDTM_PRUNE_INACTIVE_DOMAINS_DAYS", "180"))
CLEANUP_INTERVAL_HOURS: int = int(os.getenv("PDTM_CLEANUP_INTERVAL_HOURS", "24"))

# --- Storage ---
DB_PATH: Path = Path(os.getenv("PDTM_DB_PATH", str(Path(__file__).parent / "data" / "pdtm.db")))
DB_CONNECT_TIMEOUT: float = float(os.getenv("PDTM_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("PDTM_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("PDTM_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("PDTM_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("PDTM_DB_RETRY_JITTER", "0.1"))
STORAGE_BACKEND: str = os.getenv("PDTM_STORAGE", "memory")  # memory | sqlite

# --- API ---
API_HOST: str = os.getenv("PDTM_API_HOST", "127.0.0.1")
API_PORT: int = int(os.getenv("PDTM_API_PORT", "8000"))
API_LIST_LIMIT_DEFAULT: int = 100
API_LIST_LIMIT_MAX: int = 500
API_MAX_SIGNALS_PER_MESSAGE: int = 32
