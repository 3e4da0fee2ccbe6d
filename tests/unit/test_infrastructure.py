"""
Tests for the SQLite helpers, env loading, input validators and error sanitizing.
"""

from __future__ import annotations

import os
import sqlite3
from unittest.mock import patch

import pytest

from pdtm.exceptions import StorageError
from pdtm.infrastructure import database
from pdtm.infrastructure.database import create_connection, db_transaction, retry_on_db_lock
from pdtm.infrastructure.env import ensure_env_loaded, get_required_env, reset_env_loaded
from pdtm.observability.telemetry import get_counter
from pdtm.utils.error_sanitizer import get_safe_error_detail, sanitize_error_message
from pdtm.utils.validators import ValidationError, validate_category, validate_domain


class TestRetryOnDbLock:
    def test_retries_lock_errors(self, monkeypatch):
        monkeypatch.setattr(database.time, "sleep", lambda _: None)
        calls = {"n": 0}

        @retry_on_db_lock(max_retries=3, base_delay=0.0)
        def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert flaky() == "ok"
        assert calls["n"] == 3

    def test_gives_up_after_max_retries(self, monkeypatch):
        monkeypatch.setattr(database.time, "sleep", lambda _: None)

        @retry_on_db_lock(max_retries=2, base_delay=0.0)
        def always_locked() -> None:
            raise sqlite3.OperationalError("database is busy")

        with pytest.raises(sqlite3.OperationalError):
            always_locked()
        assert get_counter("database.lock_retry_exhausted") == 1

    def test_other_errors_are_not_retried(self):
        calls = {"n": 0}

        @retry_on_db_lock(max_retries=5)
        def broken() -> None:
            calls["n"] += 1
            raise sqlite3.OperationalError("no such table: kv_store")

        with pytest.raises(sqlite3.OperationalError):
            broken()
        assert calls["n"] == 1


class TestConnection:
    def test_transaction_commits_and_rolls_back(self, tmp_path):
        conn = create_connection(tmp_path / "t.db")
        conn.execute("CREATE TABLE t (v INTEGER)")

        with db_transaction(conn):
            conn.execute("INSERT INTO t VALUES (1)")
        with pytest.raises(RuntimeError):
            with db_transaction(conn):
                conn.execute("INSERT INTO t VALUES (2)")
                raise RuntimeError("abort")

        assert [row["v"] for row in conn.execute("SELECT v FROM t")] == [1]
        conn.close()

    def test_corrupt_database(self, tmp_path):
        path = tmp_path / "bad.db"
        path.write_bytes(b"\x00garbage" * 512)
        with pytest.raises(StorageError):
            create_connection(path)
        assert get_counter("database.corruption_detected") == 1


class TestEnv:
    def test_required_env(self):
        with patch.dict(os.environ, {"PDTM_TEST_VALUE": "x"}):
            assert get_required_env("PDTM_TEST_VALUE") == "x"

    def test_missing_required_env(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="PDTM_MISSING"):
                get_required_env("PDTM_MISSING")

    def test_explicit_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PDTM_FROM_DOTENV=loaded\n")
        reset_env_loaded()
        try:
            with patch.dict(os.environ, {}, clear=True):
                ensure_env_loaded(env_file)
                assert os.environ["PDTM_FROM_DOTENV"] == "loaded"
        finally:
            reset_env_loaded()


class TestValidators:
    @pytest.mark.parametrize(
        "raw,expected",
        [("Example.ORG", "example.org"), ("github.com.", "github.com"), ("", None), (None, None)],
    )
    def test_valid_domains(self, raw, expected):
        assert validate_domain(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["bad_domain", "-lead.com", "a..b", "x" * 254, "exa mple.com", "../etc"]
    )
    def test_invalid_domains(self, raw):
        with pytest.raises(ValidationError):
            validate_domain(raw)

    def test_categories(self):
        assert validate_category(" Finance ") == "finance"
        assert validate_category("") is None
        with pytest.raises(ValidationError):
            validate_category("1st")


class TestErrorSanitizer:
    def test_plain_client_error_passes(self):
        assert sanitize_error_message("Domain is required", 400) == "Domain is required"

    @pytest.mark.parametrize(
        "message",
        [
            "sqlite3.OperationalError: database is locked",
            "failed on https://example.com/account?token=abc",
            "File \"/srv/pdtm/storage/sqlite.py\", line 42",
        ],
    )
    def test_sensitive_messages_are_replaced(self, message):
        assert sanitize_error_message(message, 400) == (
            "Invalid request. Please check your input and try again."
        )

    def test_server_errors_use_context(self):
        error = StorageError("disk I/O error at /var/lib/pdtm.db")
        assert get_safe_error_detail(error, 503, "Failed to save") == "Failed to save"
        assert get_safe_error_detail(error, 503) == "Storage temporarily unavailable."
