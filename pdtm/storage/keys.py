"""
Storage keys and default values.

Single source of truth for every key the service reads or writes. Values
under a key are whole JSON documents (lists or maps), read-modify-written
as a unit.
"""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any

from pdtm.config import (
    COLLECTION_ENABLED_DEFAULT,
    MAX_EVENTS_DEFAULT,
    PRUNE_INACTIVE_DOMAINS_DAYS,
    RAW_EVENTS_TTL_DAYS,
)

EVENTS_KEY = "pdtm_events_v1"
SETTINGS_KEY = "pdtm_settings_v1"
DOMAIN_STATE_KEY = "pdtm_domain_state_v1"
ACTIVITY_STATE_KEY = "pdtm_activity_state_v1"
RISK_STATE_KEY = "pdtm_risk_state_v1"
USER_OVERRIDES_KEY = "pdtm_user_overrides_v1"
POLICY_KEY = "pdtm_retention_policy_v1"

ALL_KEYS: tuple[str, ...] = (
    EVENTS_KEY,
    SETTINGS_KEY,
    DOMAIN_STATE_KEY,
    ACTIVITY_STATE_KEY,
    RISK_STATE_KEY,
    USER_OVERRIDES_KEY,
    POLICY_KEY,
)

DEFAULTS: MappingProxyType[str, Any] = MappingProxyType(
    {
        EVENTS_KEY: [],
        SETTINGS_KEY: {
            "collectionEnabled": COLLECTION_ENABLED_DEFAULT,
            "maxEvents": MAX_EVENTS_DEFAULT,
        },
        DOMAIN_STATE_KEY: {},
        ACTIVITY_STATE_KEY: {},
        RISK_STATE_KEY: {},
        USER_OVERRIDES_KEY: {},
        POLICY_KEY: {
            "raw_events_ttl_days": RAW_EVENTS_TTL_DAYS,
            "prune_inactive_domains_days": PRUNE_INACTIVE_DOMAINS_DAYS,
            "last_cleanup_ts": 0,
        },
    }
)


def default_for(key: str) -> Any:
    """Fresh copy of the default value for `key` (KeyError for unknown keys)."""
    return copy.deepcopy(DEFAULTS[key])
