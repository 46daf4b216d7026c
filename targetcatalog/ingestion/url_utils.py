"""Source URL canonicalization.

Sources are keyed on (vendor, canonical URL) and the raw page cache is keyed
on the URL hash, so two spellings of the same catalog page must agree here.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


# Campaign tags and storefront session ids; none of them change the page content.
IGNORED_QUERY_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "utm_id",
        "gclid",
        "fbclid",
        "mc_cid",
        "mc_eid",
        "ref",
        "ref_src",
        "sid",
        "sessionid",
        "phpsessid",
        "jsessionid",
    }
)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _netloc(scheme: str, host: str, port: Optional[int]) -> str:
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return host
    return f"{host}:{port}"


def canonicalize_url(url: str, *, ignore_params: Optional[Iterable[str]] = None) -> str:
    """Return the canonical form of a catalog page URL.

    Scheme and host are lowercased, default ports and the fragment are dropped,
    a trailing slash is removed from non-root paths, and ignored query params are
    stripped with the rest sorted. Returns "" for an empty input.
    """
    if not url:
        return ""
    ignored = {p.lower() for p in ignore_params} if ignore_params is not None else IGNORED_QUERY_PARAMS
    parts = urlsplit(url.strip())
    scheme = (parts.scheme or "https").lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None

    path = parts.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    query = sorted(
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k.lower() not in ignored
    )
    return urlunsplit((scheme, _netloc(scheme, host, port), path, urlencode(query), ""))


def url_hash(url: str) -> str:
    return hashlib.sha256(canonicalize_url(url).encode("utf-8")).hexdigest()
