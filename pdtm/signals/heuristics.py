"""
URL-shape heuristics.

Derives URL signals deterministically from the path tokens, the query
parameter *names* and the hostname. Query values are never read here.
"""

from __future__ import annotations

from pdtm.signals.vocabulary import SignalCode
from pdtm.utils.domain import etld_plus_one, normalize_host, path_tokens, query_param_names

LOGIN_TOKENS: frozenset[str] = frozenset(
    {
        "login",
        "logon",
        "signin",
        "sign",  # sign-in / sign_in split into "sign" + "in"
        "auth",
        "oauth",
        "oauth2",
        "authorize",
        "sso",
        "saml",
        "openid",
        "session",
        "sessions",
        "account",
        "accounts",
        "mfa",
        "2fa",
        "verify",
    }
)

PAYMENT_TOKENS: frozenset[str] = frozenset(
    {
        "checkout",
        "payment",
        "payments",
        "pay",
        "billing",
        "purchase",
        "cart",
        "invoice",
        "subscribe",
        "donate",
    }
)

EDITOR_TOKENS: frozenset[str] = frozenset(
    {
        "compose",
        "edit",
        "editor",
        "new",
        "create",
        "write",
        "post",
        "upload",
        "submit",
        "draft",
    }
)

# "sign" only counts when followed by "in"/"on" ("sign-in", "sign_on")
_SIGN_SUFFIXES = frozenset({"in", "on"})

OAUTH_PARAMS: frozenset[str] = frozenset(
    {"client_id", "redirect_uri", "scope", "state", "code_challenge", "return_to"}
)

KNOWN_IDP_HOSTS: frozenset[str] = frozenset(
    {
        "accounts.google.com",
        "login.microsoftonline.com",
        "login.live.com",
        "appleid.apple.com",
        "idmsa.apple.com",
        "login.yahoo.com",
        "signin.aws.amazon.com",
        "auth.atlassian.com",
    }
)

# Providers whose whole registrable domain is an identity service
KNOWN_IDP_DOMAINS: frozenset[str] = frozenset(
    {
        "okta.com",
        "oktapreview.com",
        "auth0.com",
        "onelogin.com",
        "pingidentity.com",
        "duosecurity.com",
        "microsoftonline.com",
    }
)


def _has_login_token(tokens: tuple[str, ...]) -> bool:
    for index, token in enumerate(tokens):
        if token == "sign":
            if index + 1 < len(tokens) and tokens[index + 1] in _SIGN_SUFFIXES:
                return True
            continue
        if token in LOGIN_TOKENS:
            return True
    return False


def has_oauth_shape(param_names: frozenset[str]) -> bool:
    """`response_type`, or at least two of the common OAuth parameters."""
    if "response_type" in param_names:
        return True
    return len(param_names & OAUTH_PARAMS) >= 2


def is_known_idp(hostname: str | None) -> bool:
    if not hostname:
        return False
    host = hostname.lower()
    if host in KNOWN_IDP_HOSTS:
        return True
    return etld_plus_one(host) in KNOWN_IDP_DOMAINS


def extract_url_signals(url: str | None) -> list[SignalCode]:
    """
    Return URL-derived signals in a fixed order.

    Examples:
        >>> extract_url_signals("https://shop.example.com/checkout/step-2")
        [<SignalCode.URL_PAYMENT: 'url_payment'>]

        >>> extract_url_signals("https://example.com/author/jane")
        []
    """
    hostname = normalize_host(url)
    if hostname is None:
        return []

    tokens = path_tokens(url)
    params = query_param_names(url)
    signals: list[SignalCode] = []

    if _has_login_token(tokens):
        signals.append(SignalCode.URL_LOGIN)
    if has_oauth_shape(params):
        signals.append(SignalCode.OAUTH_PARAMS)
    if is_known_idp(hostname):
        signals.append(SignalCode.KNOWN_IDP)
    if any(token in PAYMENT_TOKENS for token in tokens):
        signals.append(SignalCode.URL_PAYMENT)
    if any(token in EDITOR_TOKENS for token in tokens):
        signals.append(SignalCode.URL_EDITOR)

    return signals
