"""Configuration and constants for the catalog sync."""

import os
from dataclasses import dataclass
from typing import Any, Dict, List
from urllib.parse import urlparse

from dotenv import load_dotenv

__all__ = [
    "BASE_URL",
    "ALLOWED_DOMAINS",
    "SITEMAP_COUNT",
    "SITEMAP_URL_TEMPLATE",
    "SITEMAP_DELAY",
    "CATALOG_PATH_MARKER",
    "BRAND_PATH_MARKER",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_REQUESTS_PER_MINUTE",
    "MAX_WORKERS",
    "MAX_RETRIES",
    "RETRY_BACKOFF_BASE",
    "MAX_RETRY_BACKOFF",
    "RETRY_STATUS_CODES",
    "DEFAULT_MAX_PRODUCTS",
    "DB_PATH",
    "DATASET_PATH",
    "CACHE_KEY",
    "METADATA_KEY",
    "SOURCE_NAME",
    "CURRENCY",
    "RunConfig",
    "sitemap_urls",
]

load_dotenv()  # Allow overrides from a local .env file

BASE_URL = os.getenv("CATALOG_SYNC_BASE_URL", "https://www.jula.no").rstrip("/")

# Domains we are willing to fetch from
ALLOWED_DOMAINS = frozenset({
    "www.jula.no",
    "jula.no",
    urlparse(BASE_URL).hostname or "www.jula.no",
})

# Sitemap discovery
SITEMAP_COUNT = 25
SITEMAP_URL_TEMPLATE = "{base}/sitemap.{index}.xml"
SITEMAP_DELAY = 0.5  # seconds between sitemap fetches

# URL markers
CATALOG_PATH_MARKER = "/catalog/"
BRAND_PATH_MARKER = "/varemerker/"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; JulaScraper/1.0)",
}

REQUEST_TIMEOUT = 15

# Crawl pacing
MAX_REQUESTS_PER_MINUTE = int(os.getenv("MAX_REQUESTS_PER_MINUTE", "30"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

# Retry settings with exponential backoff
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 2.0
MAX_RETRY_BACKOFF = 60.0
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_MAX_PRODUCTS = 50

# Storage
DB_PATH = os.getenv("CATALOG_SYNC_DB", "data/catalog.db")
DATASET_PATH = os.getenv("CATALOG_SYNC_DATASET", "data/dataset.jsonl")
CACHE_KEY = "product-cache"
METADATA_KEY = "cache-metadata"

SOURCE_NAME = "Jula"
CURRENCY = "NOK"


def sitemap_urls(base_url: str = BASE_URL, count: int = SITEMAP_COUNT) -> List[str]:
    """Build the list of sitemap document URLs (1-based)."""
    return [
        SITEMAP_URL_TEMPLATE.format(base=base_url.rstrip("/"), index=i)
        for i in range(1, count + 1)
    ]


_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def _coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return default


def _coerce_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = int(value) if isinstance(value, (int, float)) else int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class RunConfig:
    """Input for a single sync run.

    Built from the raw input document with ``from_input``, which never
    rejects malformed input: it coerces what it can and falls back to
    defaults for the rest.
    """

    keyword: str = ""
    max_products: int = DEFAULT_MAX_PRODUCTS
    category: str = ""
    full_index: bool = False
    update_only: bool = False
    search_only: bool = False
    save_to_cache: bool = True
    description_strategy: str = "paragraphs"

    @classmethod
    def from_input(cls, raw: Any) -> "RunConfig":
        """Coerce a raw input document into a RunConfig.

        A bare string is treated as the keyword. Anything that is neither a
        string nor a mapping yields the defaults.
        """
        if isinstance(raw, str):
            return cls(keyword=raw.strip())
        if not isinstance(raw, dict):
            return cls()

        return cls(
            keyword=_coerce_str(raw.get("keyword")),
            max_products=_coerce_int(raw.get("maxProducts"), DEFAULT_MAX_PRODUCTS),
            category=_coerce_str(raw.get("category")),
            full_index=_coerce_bool(raw.get("fullIndex")),
            update_only=_coerce_bool(raw.get("updateOnly")),
            search_only=_coerce_bool(raw.get("searchOnly")),
            save_to_cache=_coerce_bool(raw.get("saveToCache"), default=True),
            description_strategy=_coerce_str(raw.get("descriptionStrategy")) or "paragraphs",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "maxProducts": self.max_products,
            "category": self.category,
            "fullIndex": self.full_index,
            "updateOnly": self.update_only,
            "searchOnly": self.search_only,
            "saveToCache": self.save_to_cache,
            "descriptionStrategy": self.description_strategy,
        }
