"""Run orchestration: pick a mode from the input flags and execute it.

Search-only runs answer from the cache and never touch the network. Every
other run discovers URLs from the sitemaps, filters them, fetches and
extracts the selected pages, and optionally merges the results into the
cache. ``fullIndex`` lifts the product cap and ``updateOnly`` skips pages
already cached; both can be active at once.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from catalog_sync.config import RunConfig
from catalog_sync.crawler import Crawler
from catalog_sync.db import CacheRepository
from catalog_sync.extractor import ProductExtractor
from catalog_sync.logging_config import get_logger, log_sync_event
from catalog_sync.models import CacheMetadata, ProductRecord
from catalog_sync.sitemap import SitemapDiscoverer
from catalog_sync.url_filter import (
    KeywordTransform,
    keyword_variants,
    matches_category,
    matches_keyword,
    select_urls,
)

__all__ = ["Mode", "RunSummary", "ModeController", "select_mode", "search_cache"]

logger = get_logger("modes")


class Mode(Enum):
    SEARCH_ONLY = "search_only"
    FULL_INDEX = "full_index"
    UPDATE_ONLY = "update_only"
    FILTERED_SCRAPE = "filtered_scrape"


def select_mode(config: RunConfig) -> Mode:
    """Name the run's mode. ``search_only`` overrides the other flags."""
    if config.search_only:
        return Mode.SEARCH_ONLY
    if config.full_index:
        return Mode.FULL_INDEX
    if config.update_only:
        return Mode.UPDATE_ONLY
    return Mode.FILTERED_SCRAPE


def _search_text(record: ProductRecord) -> str:
    parts = [
        record.name or "",
        record.description or "",
        record.brand or "",
        " ".join(record.categories),
        json.dumps(record.features, ensure_ascii=False),
        json.dumps(record.specs, ensure_ascii=False),
    ]
    return " ".join(parts)


def search_cache(
    records: Iterable[ProductRecord],
    keyword: str = "",
    category: str = "",
    max_products: Optional[int] = None,
    transforms: Optional[Sequence[KeywordTransform]] = None,
) -> List[ProductRecord]:
    """Filter cached records in memory.

    The keyword (any of its variants) must appear in the record's text
    fields; the category must appear in its URL or category path.
    """
    variants = keyword_variants(keyword, transforms)
    matches: List[ProductRecord] = []
    for record in records:
        if variants and not matches_keyword(_search_text(record), variants):
            continue
        if not matches_category(record.url + " " + " ".join(record.categories), category):
            continue
        matches.append(record)
        if max_products is not None and len(matches) >= max_products:
            break
    return matches


@dataclass
class RunSummary:
    mode: Mode
    discovered: int = 0
    selected: int = 0
    excluded_cached: int = 0
    scraped: int = 0
    failed: int = 0
    records: List[ProductRecord] = field(default_factory=list)
    metadata: Optional[CacheMetadata] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "mode": self.mode.value,
            "discovered": self.discovered,
            "selected": self.selected,
            "excludedCached": self.excluded_cached,
            "scraped": self.scraped,
            "failed": self.failed,
            "cacheMetadata": self.metadata.to_dict() if self.metadata else None,
        }


class ModeController:
    """Executes one sync run.

    Network collaborators are only built when a scraping mode needs them,
    so a search-only run never constructs a discoverer or crawler.
    """

    def __init__(
        self,
        config: RunConfig,
        repository: CacheRepository,
        sink,
        discoverer: Optional[SitemapDiscoverer] = None,
        crawler: Optional[Crawler] = None,
        extractor: Optional[ProductExtractor] = None,
        transforms: Optional[Sequence[KeywordTransform]] = None,
    ):
        self.config = config
        self.repository = repository
        self.sink = sink
        self._discoverer = discoverer
        self._crawler = crawler
        self.extractor = extractor or ProductExtractor(config.description_strategy)
        self.transforms = transforms

    @property
    def mode(self) -> Mode:
        return select_mode(self.config)

    @property
    def discoverer(self) -> SitemapDiscoverer:
        if self._discoverer is None:
            self._discoverer = SitemapDiscoverer()
        return self._discoverer

    @property
    def crawler(self) -> Crawler:
        if self._crawler is None:
            self._crawler = Crawler()
        return self._crawler

    def run(self) -> RunSummary:
        mode = self.mode
        logger.info(
            f"Starting catalog sync ({mode.value}) - keyword: \"{self.config.keyword}\", "
            f"max: {self.config.max_products}"
        )
        log_sync_event("run_start", {"mode": mode.value, "input": self.config.to_dict()})

        if mode is Mode.SEARCH_ONLY:
            summary = self._run_search()
        else:
            summary = self._run_scrape(mode)

        log_sync_event("run_complete", summary.to_dict())
        return summary

    def _run_search(self) -> RunSummary:
        cached = self.repository.get_all_records()
        logger.info(f"Searching {len(cached)} cached products")
        results = search_cache(
            cached.values(),
            keyword=self.config.keyword,
            category=self.config.category,
            max_products=self.config.max_products,
            transforms=self.transforms,
        )
        self.sink.push(results)
        logger.info(f"Found {len(results)} matching products in cache")
        return RunSummary(
            mode=Mode.SEARCH_ONLY,
            selected=len(results),
            records=results,
        )

    def _run_scrape(self, mode: Mode) -> RunSummary:
        config = self.config
        candidates = self.discoverer.discover()

        capped = select_urls(
            candidates,
            keyword=config.keyword,
            category=config.category,
            max_products=None if config.full_index else config.max_products,
            transforms=self.transforms,
        )
        if config.update_only:
            urls = select_urls(capped, exclude=self.repository.get_existing_urls())
        else:
            urls = capped
        logger.info(f"Will scrape {len(urls)} products")
        log_sync_event("urls_selected", {
            "discovered": len(candidates),
            "selected": len(urls),
            "excluded_cached": len(capped) - len(urls),
        })

        summary = RunSummary(
            mode=mode,
            discovered=len(candidates),
            selected=len(urls),
            excluded_cached=len(capped) - len(urls),
        )
        for outcome in self.crawler.crawl(urls, self.extractor.extract):
            if outcome.ok:
                record = outcome.value
                summary.records.append(record)
                logger.info(f"✓ {record.name} - {record.price} kr")
            else:
                summary.failed += 1
                logger.error(f"✗ Error scraping {outcome.url}: {outcome.error}")
                log_sync_event("product_error", {
                    "url": outcome.url,
                    "error": str(outcome.error),
                })
        summary.scraped = len(summary.records)

        if config.update_only or config.save_to_cache:
            summary.metadata = self.repository.merge(summary.records)

        self.sink.push(summary.records)
        logger.info(f"Scraped {summary.scraped} products successfully ({summary.failed} failed)")
        return summary
