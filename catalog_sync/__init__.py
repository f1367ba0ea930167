"""Jula product catalog sync package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from catalog_sync.config import (
    BASE_URL,
    CATALOG_PATH_MARKER,
    DB_PATH,
    DEFAULT_MAX_PRODUCTS,
    RunConfig,
)
from catalog_sync.crawler import Crawler, FetchError
from catalog_sync.db import CacheRepository, KeyValueStore
from catalog_sync.extractor import ProductExtractor
from catalog_sync.models import CacheMetadata, ProductRecord
from catalog_sync.modes import Mode, ModeController, RunSummary, select_mode
from catalog_sync.sink import DatasetSink
from catalog_sync.sitemap import SitemapDiscoverer
from catalog_sync.url_filter import keyword_variants, select_urls

__all__ = [
    # Version
    "__version__",
    # Config
    "BASE_URL",
    "CATALOG_PATH_MARKER",
    "DB_PATH",
    "DEFAULT_MAX_PRODUCTS",
    "RunConfig",
    # Models
    "ProductRecord",
    "CacheMetadata",
    # Pipeline
    "SitemapDiscoverer",
    "keyword_variants",
    "select_urls",
    "Crawler",
    "FetchError",
    "ProductExtractor",
    "KeyValueStore",
    "CacheRepository",
    "DatasetSink",
    "Mode",
    "ModeController",
    "RunSummary",
    "select_mode",
]
