"""Vendor page retrieval with an optional on-disk raw HTML cache.

Connection errors and timeouts are retried a few times with backoff. After
that, any non-success (bad URL, transport error, HTTP >= 400, oversized or
empty body) raises ContentFetchError; ingestion never runs on partial content.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from targetcatalog.errors import ContentFetchError
from targetcatalog.ingestion.url_utils import url_hash

logger = logging.getLogger(__name__)

USER_AGENT = "TargetCatalog-Ingestion/1.0 (catalog sync)"
MAX_BYTES = 2_000_000


def _validate_fetch_url(url: str) -> Optional[str]:
    try:
        p = urlparse(url)
    except ValueError:
        return "invalid_url"
    if p.scheme not in ("http", "https"):
        return "bad_scheme"
    if not p.hostname:
        return "missing_host"
    return None


def cache_path(cache_dir: str, url: str) -> Path:
    return Path(cache_dir) / f"{url_hash(url)}.html"


def load_cached(cache_dir: str, url: str) -> Optional[str]:
    p = cache_path(cache_dir, url)
    return p.read_text(encoding="utf-8") if p.exists() else None


def save_cached(cache_dir: str, url: str, html: str) -> Path:
    p = cache_path(cache_dir, url)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(html, encoding="utf-8")
    return p


@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=1, max=8),
    reraise=True,
)
def _open(url: str, timeout: float) -> requests.Response:
    return requests.get(
        url,
        headers={"User-Agent": USER_AGENT},
        timeout=(5, timeout),
        allow_redirects=True,
        stream=True,
    )


def fetch_page(
    url: str,
    *,
    timeout: float = 30,
    max_bytes: int = MAX_BYTES,
    cache_dir: Optional[str] = None,
    use_cache: bool = False,
) -> str:
    """Return the page HTML, from the cache when enabled and present."""
    if not url:
        raise ContentFetchError(url, "empty_url")
    err = _validate_fetch_url(url)
    if err:
        raise ContentFetchError(url, err)

    if use_cache and cache_dir:
        cached = load_cached(cache_dir, url)
        if cached is not None:
            logger.info("Using cached HTML for %s", url)
            return cached

    logger.info("Fetching %s", url)
    try:
        with _open(url, timeout) as resp:
            if resp.status_code >= 400:
                raise ContentFetchError(url, f"http_{resp.status_code} {resp.reason or ''}".strip())
            content = b""
            for chunk in resp.iter_content(chunk_size=64 * 1024):
                if not chunk:
                    continue
                content += chunk
                if len(content) > max_bytes:
                    raise ContentFetchError(url, "too_large")
            encoding = resp.encoding or "utf-8"
    except requests.RequestException as e:
        raise ContentFetchError(url, str(e)) from e

    try:
        html = content.decode(encoding, errors="replace")
    except LookupError:
        html = content.decode("utf-8", errors="replace")
    if not html.strip():
        raise ContentFetchError(url, "empty_html")

    if use_cache and cache_dir:
        path = save_cached(cache_dir, url, html)
        logger.info("Cached HTML to %s", path)
    return html
