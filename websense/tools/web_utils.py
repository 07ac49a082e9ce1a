from __future__ import annotations

from collections.abc import Iterable, Sequence
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def normalize_url(url: str) -> str:
    """Collapse a URL to ``scheme://host/path``.

    Query string, fragment, credentials and port are dropped. Malformed URLs
    are returned unchanged so the fetch stage can still fail on them.
    """
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        return url
    if not parsed.scheme or not host:
        return url
    if ":" in host:
        host = f"[{host}]"
    path = parsed.path or "/"
    return f"{parsed.scheme}://{host}{path}"


def deduplicate_urls(urls: Iterable[str]) -> list[str]:
    """Normalize and drop repeats, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for url in urls:
        normalized = normalize_url(url)
        if normalized in seen:
            continue
        seen.add(normalized)
        unique.append(normalized)
    return unique


def matches_site_filter(url: str, site_filter: Sequence[str] | None) -> bool:
    if not site_filter:
        return True
    return any(site in url for site in site_filter)


def extract_domain(url: str) -> str:
    """Extract domain from URL for display."""
    try:
        return urlparse(url).netloc
    except Exception:
        return url
