"""
Centralized environment variable loader for PDTM.

Entry points (API server, scripts) call ensure_env_loaded() before reading
PDTM_* variables so a local .env file takes effect.

Side Effects:
    - Loads .env file from project root
    - Fails fast with clear error messages for required variables

Usage:
    from pdtm.infrastructure.env import ensure_env_loaded, get_required_env

    ensure_env_loaded()
    db_path = get_required_env("PDTM_DB_PATH")
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_ENV_LOADED = False


def ensure_env_loaded(env_path: Path | None = None) -> None:
    """
    Ensure .env file is loaded exactly once.

    Args:
        env_path: Optional path to .env file. If None, searches upward for one.

    Side Effects:
        - Loads environment variables from .env file (existing vars win)
        - Sets module-level flag to prevent double-loading
    """
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    if env_path is None:
        current = Path(__file__).parent
        while current != current.parent:
            env_candidate = current / ".env"
            if env_candidate.exists():
                env_path = env_candidate
                break
            current = current.parent

    if env_path and env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()
    _ENV_LOADED = True


def get_required_env(name: str) -> str:
    """
    Return a required environment variable.

    Raises:
        RuntimeError: If the variable is unset or empty
    """
    ensure_env_loaded()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable: {name}. "
            "Set it in your shell or in the project .env file."
        )
    return value


def reset_env_loaded() -> None:
    """Allow ensure_env_loaded() to run again (tests only)."""
    global _ENV_LOADED
    _ENV_LOADED = False
