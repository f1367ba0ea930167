"""Product URL discovery from the shop's sitemap documents.

The shop publishes its pages across a fixed set of numbered sitemaps
(``/sitemap.1.xml`` .. ``/sitemap.25.xml``). Each is fetched in turn and
every ``<loc>`` pointing at a catalog page is kept. A sitemap that fails
for any reason is skipped; losing all of them just means nothing to scrape.
"""

import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from catalog_sync.config import (
    BASE_URL,
    CATALOG_PATH_MARKER,
    REQUEST_TIMEOUT,
    SITEMAP_COUNT,
    SITEMAP_DELAY,
    sitemap_urls,
)
from catalog_sync.crawler import create_session
from catalog_sync.logging_config import get_logger, log_sync_event
from catalog_sync.url_validation import is_catalog_url, sanitize_url

__all__ = ["SitemapDiscoverer", "DiscoveryReport", "parse_sitemap_locs"]

logger = get_logger("sitemap")


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def parse_sitemap_locs(xml_text) -> Optional[List[str]]:
    """Extract ``<url><loc>`` values from a sitemap document.

    Returns None if the document is not a ``<urlset>`` with at least one
    ``<url>`` entry. Raises ``ET.ParseError`` on malformed XML.
    """
    root = ET.fromstring(xml_text)
    if _local_name(root.tag) != "urlset":
        return None

    url_elements = [el for el in root if _local_name(el.tag) == "url"]
    if not url_elements:
        return None

    locs: List[str] = []
    for url_el in url_elements:
        for child in url_el:
            if _local_name(child.tag) == "loc" and child.text:
                locs.append(child.text.strip())
                break
    return locs


@dataclass
class DiscoveryReport:
    """Counters for one discovery pass."""

    fetched: int = 0
    skipped: int = 0
    failed: int = 0
    urls_found: int = 0


class SitemapDiscoverer:
    """Collects catalog URLs from the shop's numbered sitemaps."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        count: int = SITEMAP_COUNT,
        delay: float = SITEMAP_DELAY,
        session: Optional[requests.Session] = None,
        marker: str = CATALOG_PATH_MARKER,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url
        self.count = count
        self.delay = delay
        self.session = session or create_session()
        self.marker = marker
        self._sleep = sleep
        self.report = DiscoveryReport()

    def fetch_index(self, sitemap_url: str) -> Optional[List[str]]:
        """Fetch one sitemap and return its catalog URLs.

        Returns None when the sitemap was skipped (non-success status or
        not a urlset document).
        """
        resp = self.session.get(sitemap_url, timeout=REQUEST_TIMEOUT)
        if not resp.ok:
            logger.debug(f"Skipping {sitemap_url}: HTTP {resp.status_code}")
            return None

        locs = parse_sitemap_locs(resp.content)
        if locs is None:
            logger.debug(f"Skipping {sitemap_url}: no urlset entries")
            return None

        return [
            sanitize_url(loc) for loc in locs
            if is_catalog_url(loc, self.marker)
        ]

    def discover(self) -> List[str]:
        """Fetch every sitemap sequentially and accumulate catalog URLs.

        The result keeps discovery order and may contain duplicates.
        """
        self.report = DiscoveryReport()
        candidates: List[str] = []
        urls = sitemap_urls(self.base_url, self.count)

        for i, sitemap_url in enumerate(urls):
            logger.info(f"Fetching {sitemap_url}...")
            try:
                found = self.fetch_index(sitemap_url)
            except (requests.exceptions.RequestException, ET.ParseError) as e:
                self.report.failed += 1
                logger.warning(f"  Failed: {sitemap_url} - {e}")
                found = None
            else:
                if found is None:
                    self.report.skipped += 1
                else:
                    self.report.fetched += 1
                    candidates.extend(found)
                    logger.info(f"  Found {len(found)} product URLs")
                    log_sync_event("sitemap_fetched", {
                        "sitemap": sitemap_url,
                        "urls": len(found),
                    }, level=logging.DEBUG)

            if i < len(urls) - 1 and self.delay > 0:
                self._sleep(self.delay)

        self.report.urls_found = len(candidates)
        logger.info(f"Total product URLs found: {len(candidates)}")
        log_sync_event("discovery_complete", {
            "sitemaps_fetched": self.report.fetched,
            "sitemaps_skipped": self.report.skipped,
            "sitemaps_failed": self.report.failed,
            "urls_found": self.report.urls_found,
        })
        return candidates
