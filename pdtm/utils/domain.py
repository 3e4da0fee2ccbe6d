"""
Hostname and registrable-domain (eTLD+1) utilities.

Privacy: callers only ever receive a hostname or an eTLD+1 from this
module, never a full URL, path, or query value. Malformed input yields
None, never an exception.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import tldextract

# Bundled Public Suffix List snapshot only; no live HTTP fetch
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_WEB_SCHEMES = ("http", "https")
_REDIRECT_PARAMS = ("redirect_uri", "return_to")


def normalize_host(url: str | None) -> str | None:
    """
    Return the lowercase hostname of an http(s) URL, or None.

    Examples:
        >>> normalize_host("https://Accounts.Example.com:8443/login")
        'accounts.example.com'

        >>> normalize_host("chrome://settings") is None
        True
    """
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlsplit(url.strip())
        if parsed.scheme.lower() not in _WEB_SCHEMES:
            return None
        hostname = parsed.hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname.rstrip(".") or None


def etld_plus_one(hostname: str | None) -> str | None:
    """
    Reduce a hostname to its registrable domain.

    Hosts without a public suffix (IP addresses, localhost) are returned
    as-is. A bare public suffix ("co.uk") has no registrable domain.

    Examples:
        >>> etld_plus_one("app.example.org")
        'example.org'

        >>> etld_plus_one("shop.example.co.uk")
        'example.co.uk'
    """
    if not hostname or not isinstance(hostname, str):
        return None
    host = hostname.strip().lower().rstrip(".")
    if not host:
        return None

    parts = _EXTRACT(host)
    if parts.domain and parts.suffix:
        return f"{parts.domain}.{parts.suffix}"
    if parts.suffix:
        return None
    return host


def domain_of(url: str | None) -> str | None:
    """normalize_host + etld_plus_one in one step."""
    return etld_plus_one(normalize_host(url))


def extract_embedded_redirect_domain(url: str | None) -> str | None:
    """
    Extract the eTLD+1 named by the `redirect_uri` (or `return_to`) parameter.

    The parameter value is read solely to derive its hostname and never
    leaves this function: it is not stored, logged, or passed on.

    Examples:
        >>> extract_embedded_redirect_domain(
        ...     "https://accounts.example.com/o/oauth2/auth?redirect_uri=https%3A%2F%2Fapp.example.org%2Fcb"
        ... )
        'example.org'
    """
    if not url or not isinstance(url, str):
        return None
    try:
        params = parse_qs(urlsplit(url).query)
    except ValueError:
        return None

    for name in _REDIRECT_PARAMS:
        values = params.get(name)
        if values:
            return domain_of(values[0])
    return None


def query_param_names(url: str | None) -> frozenset[str]:
    """Return the lowercase query parameter names of a URL (values are discarded)."""
    if not url or not isinstance(url, str):
        return frozenset()
    try:
        params = parse_qs(urlsplit(url).query, keep_blank_values=True)
    except ValueError:
        return frozenset()
    return frozenset(name.lower() for name in params)


def path_tokens(url: str | None) -> tuple[str, ...]:
    """Split a URL path into lowercase tokens on '/', '-', '_' and '.'."""
    if not url or not isinstance(url, str):
        return ()
    try:
        path = urlsplit(url).path
    except ValueError:
        return ()
    for sep in ("-", "_", "."):
        path = path.replace(sep, "/")
    return tuple(token for token in path.lower().split("/") if token)
