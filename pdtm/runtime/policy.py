"""
Centralized Classification and Management Policy

Level precedence and management-state thresholds for the decision engine.

IMPORTANT: Values are loaded from config/pdtm_policy.yaml (or the file named
by PDTM_POLICY_PATH). This module provides the constants; YAML is the
source of truth and hardcoded defaults apply when no file is found.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from pdtm.exceptions import PolicyError
from pdtm.observability.logging import get_logger
from pdtm.signals.vocabulary import ActivityLevel

logger = get_logger(__name__)

DEFAULT_LEVEL_PRECEDENCE: tuple[ActivityLevel, ...] = (
    ActivityLevel.TRANSACTION,
    ActivityLevel.UGC,
    ActivityLevel.ACCOUNT,
)


@dataclass(frozen=True)
class ManagementThresholds:
    """Cut-offs used by the management-state decision list."""

    suggested_min_confidence: float = 0.8
    review_min_confidence: float = 0.6
    frequent_visit_count: int = 50  # strictly greater than
    account_min_score: int = 20


@dataclass(frozen=True)
class Policy:
    level_precedence: tuple[ActivityLevel, ...] = DEFAULT_LEVEL_PRECEDENCE
    thresholds: ManagementThresholds = ManagementThresholds()


def _candidate_paths() -> list[Path]:
    env_path = os.getenv("PDTM_POLICY_PATH")
    paths = [Path(env_path)] if env_path else []
    paths.extend(
        [
            Path(__file__).parent.parent.parent / "config" / "pdtm_policy.yaml",
            Path("config/pdtm_policy.yaml"),
        ]
    )
    return paths


def parse_level_precedence(raw: Any) -> tuple[ActivityLevel, ...]:
    """
    Validate a precedence list, highest severity first.

    Every non-VIEW level must be ranked exactly once. VIEW is implicit (the
    fallback when nothing else matches) and may be omitted or listed last.

    Raises:
        PolicyError: On unknown, duplicate, misplaced, or missing levels
    """
    if not isinstance(raw, list) or not raw:
        raise PolicyError("level_precedence must be a non-empty list")

    levels: list[ActivityLevel] = []
    for entry in raw:
        try:
            level = ActivityLevel(str(entry).lower())
        except ValueError:
            raise PolicyError(f"Unknown activity level in precedence: {entry!r}") from None
        if level in levels:
            raise PolicyError(f"Duplicate activity level in precedence: {level.value}")
        levels.append(level)

    if ActivityLevel.VIEW in levels:
        if levels[-1] is not ActivityLevel.VIEW:
            raise PolicyError("'view' may only appear last in level_precedence")
        levels.pop()

    missing = [level.value for level in DEFAULT_LEVEL_PRECEDENCE if level not in levels]
    if missing:
        raise PolicyError(f"level_precedence must rank every level; missing: {missing}")

    return tuple(levels)


def parse_policy(data: dict[str, Any]) -> Policy:
    """Build a Policy from a parsed YAML mapping, defaulting missing keys."""
    classification = data.get("classification") or {}
    management = data.get("management") or {}

    precedence = DEFAULT_LEVEL_PRECEDENCE
    if "level_precedence" in classification:
        precedence = parse_level_precedence(classification["level_precedence"])

    defaults = ManagementThresholds()
    try:
        thresholds = ManagementThresholds(
            suggested_min_confidence=float(
                management.get("suggested_min_confidence", defaults.suggested_min_confidence)
            ),
            review_min_confidence=float(
                management.get("review_min_confidence", defaults.review_min_confidence)
            ),
            frequent_visit_count=int(
                management.get("frequent_visit_count", defaults.frequent_visit_count)
            ),
            account_min_score=int(management.get("account_min_score", defaults.account_min_score)),
        )
    except (TypeError, ValueError) as exc:
        raise PolicyError(f"Invalid management threshold: {exc}") from exc

    return Policy(level_precedence=precedence, thresholds=thresholds)


def load_policy(path: Path | None = None) -> Policy:
    """
    Load the policy file.

    Side Effects:
        - Reads the YAML policy from the filesystem

    Raises:
        PolicyError: If an explicit `path` is missing or the file is invalid
    """
    if path is not None:
        if not path.exists():
            raise PolicyError(f"Policy file not found: {path}")
        candidates = [path]
    else:
        candidates = _candidate_paths()

    for config_path in candidates:
        if config_path.exists():
            try:
                data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as exc:
                raise PolicyError(f"Failed to parse policy {config_path}: {exc}") from exc
            if not isinstance(data, dict):
                raise PolicyError(f"Policy {config_path} must be a mapping")
            logger.debug("Loaded policy from %s", config_path)
            return parse_policy(data)

    logger.warning("pdtm_policy.yaml not found, using hardcoded defaults")
    return Policy()


def _load_default_policy() -> Policy:
    try:
        return load_policy()
    except PolicyError as exc:
        logger.error("Invalid policy file, using hardcoded defaults: %s", exc)
        return Policy()


# Load once at module import time
DEFAULT_POLICY: Policy = _load_default_policy()

LEVEL_PRECEDENCE = DEFAULT_POLICY.level_precedence
THRESHOLDS = DEFAULT_POLICY.thresholds

SUGGESTED_MIN_CONFIDENCE = THRESHOLDS.suggested_min_confidence
REVIEW_MIN_CONFIDENCE = THRESHOLDS.review_min_confidence
FREQUENT_VISIT_COUNT = THRESHOLDS.frequent_visit_count
ACCOUNT_MIN_SCORE = THRESHOLDS.account_min_score
