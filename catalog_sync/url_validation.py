"""Checks on URLs coming from sitemaps and product pages.

Sitemap locations and image sources are untrusted. Before anything is
fetched it must be a plain http(s) URL on one of the shop's own hosts.
"""

import re
from typing import Iterable, Optional
from urllib.parse import urldefrag, urlparse

from catalog_sync.config import ALLOWED_DOMAINS, CATALOG_PATH_MARKER

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "validate_url",
    "is_safe_url",
    "is_catalog_url",
    "is_image_source_allowed",
]


class URLValidationError(Exception):
    """A URL was refused before fetching."""


FETCHABLE_SCHEMES = ("http", "https")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]|%00")

# Traversal and script injection, matched against the lowercased URL
_SUSPICIOUS = re.compile(r"\.\./|%2e%2e|<script|javascript:")


def sanitize_url(url: Optional[str]) -> str:
    """Trim the URL, remove control characters and drop any #fragment."""
    if not url:
        return ""
    cleaned = _CONTROL_CHARS.sub("", url.strip())
    return urldefrag(cleaned)[0]


def validate_url(url: str, allowed_domains: Optional[Iterable[str]] = None) -> str:
    """Return the sanitized URL, or raise URLValidationError.

    ``allowed_domains`` defaults to ALLOWED_DOMAINS; an empty collection
    accepts any host.
    """
    cleaned = sanitize_url(url)
    if not cleaned:
        raise URLValidationError("URL is empty")

    parsed = urlparse(cleaned)
    scheme = parsed.scheme.lower()
    if scheme not in FETCHABLE_SCHEMES:
        raise URLValidationError(f"Refusing {scheme or 'schemeless'} URL: {cleaned}")

    host = (parsed.hostname or "").lower()
    if not host:
        raise URLValidationError(f"URL has no host: {cleaned}")

    domains = ALLOWED_DOMAINS if allowed_domains is None else frozenset(allowed_domains)
    if domains and host not in domains:
        raise URLValidationError(f"Host {host!r} is not one of {sorted(domains)}")

    found = _SUSPICIOUS.search(cleaned.lower())
    if found:
        raise URLValidationError(f"Suspicious sequence {found.group(0)!r} in {cleaned}")

    return cleaned


def is_safe_url(url: str, allowed_domains: Optional[Iterable[str]] = None) -> bool:
    try:
        validate_url(url, allowed_domains)
    except URLValidationError:
        return False
    return True


def is_catalog_url(url: str, marker: str = CATALOG_PATH_MARKER) -> bool:
    """Product detail pages live under the catalog path."""
    return bool(url) and marker in url


def is_image_source_allowed(src: str) -> bool:
    return urlparse(src).scheme.lower() in FETCHABLE_SCHEMES
