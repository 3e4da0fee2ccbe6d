"""
Signal vocabulary and activity taxonomy.

The string values are the wire contract with the content-probing
collaborator: both sides must use these exact constants, otherwise the
classifier's validation step drops the signal.
"""

from __future__ import annotations

from enum import Enum


class SignalCode(str, Enum):
    """Closed vocabulary of evidence codes accepted by the classifier."""

    # URL-derived (pure function of the URL string)
    URL_LOGIN = "url_login"
    URL_PAYMENT = "url_payment"
    URL_EDITOR = "url_editor"
    OAUTH_PARAMS = "oauth_params"
    KNOWN_IDP = "known_idp"

    # Content-derived (auxiliary, corroborating only)
    DOM_PASSWORD = "dom_password"
    DOM_EDITOR = "dom_editor"
    DOM_PAYMENT = "dom_payment"

    # Relationship-derived (RP/IdP inference)
    REDIRECT_URI_MATCH = "redirect_uri_match"
    OPENER_LINK = "opener_link"
    TEMPORAL_CHAIN = "temporal_chain"


class ActivityLevel(str, Enum):
    """
    Depth of interaction with a domain.

    Severity order: VIEW < ACCOUNT < UGC < TRANSACTION
    """

    VIEW = "view"  # Passive consumption
    ACCOUNT = "account"  # Login, settings, profile
    UGC = "ugc"  # Creation, editing, posting
    TRANSACTION = "transaction"  # Checkout, payment

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY: dict[ActivityLevel, int] = {
    ActivityLevel.VIEW: 0,
    ActivityLevel.ACCOUNT: 1,
    ActivityLevel.UGC: 2,
    ActivityLevel.TRANSACTION: 3,
}

KNOWN_SIGNAL_CODES: frozenset[str] = frozenset(code.value for code in SignalCode)

# URL evidence that the page itself is a sign-in / authorization endpoint.
# Relationship signals only count on such pages.
IDP_PAGE_SIGNALS: frozenset[SignalCode] = frozenset(
    {SignalCode.URL_LOGIN, SignalCode.OAUTH_PARAMS, SignalCode.KNOWN_IDP}
)

# Which signals support which level. VIEW is the absence of all of them.
LEVEL_SIGNALS: dict[ActivityLevel, frozenset[SignalCode]] = {
    ActivityLevel.TRANSACTION: frozenset({SignalCode.URL_PAYMENT, SignalCode.DOM_PAYMENT}),
    ActivityLevel.UGC: frozenset({SignalCode.URL_EDITOR, SignalCode.DOM_EDITOR}),
    ActivityLevel.ACCOUNT: frozenset(
        {
            SignalCode.URL_LOGIN,
            SignalCode.OAUTH_PARAMS,
            SignalCode.KNOWN_IDP,
            SignalCode.DOM_PASSWORD,
            SignalCode.REDIRECT_URI_MATCH,
            SignalCode.OPENER_LINK,
            SignalCode.TEMPORAL_CHAIN,
        }
    ),
    ActivityLevel.VIEW: frozenset(),
}


def is_known_signal(code: object) -> bool:
    """True if `code` is a string (or SignalCode) in the vocabulary."""
    if isinstance(code, SignalCode):
        return True
    return isinstance(code, str) and code in KNOWN_SIGNAL_CODES


def parse_level(value: str | ActivityLevel) -> ActivityLevel:
    """Parse a stored level string. Unrecognized values map to VIEW."""
    if isinstance(value, ActivityLevel):
        return value
    try:
        return ActivityLevel(value)
    except ValueError:
        return ActivityLevel.VIEW
