"""Page fetching: polite HTTP with retry, a shared rate ceiling and a worker pool.

The sync pipeline hands the crawler an ordered list of product URLs and a
handler that turns one fetched page into a record. Pages are fetched by a
small thread pool; all workers share one requests-per-minute budget.
Outcomes come back as they complete, so their order is not the input order.
"""

import concurrent.futures
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

import requests

from catalog_sync.config import (
    HEADERS,
    MAX_REQUESTS_PER_MINUTE,
    MAX_RETRIES,
    MAX_RETRY_BACKOFF,
    MAX_WORKERS,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_BASE,
    RETRY_STATUS_CODES,
)
from catalog_sync.logging_config import get_logger
from catalog_sync.url_validation import URLValidationError, validate_url

__all__ = [
    "FetchError",
    "RateLimiter",
    "PageOutcome",
    "Crawler",
    "create_session",
    "fetch_html",
]

logger = get_logger("crawler")


class FetchError(ValueError):
    """A page could not be fetched, after retries where applicable."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def create_session() -> requests.Session:
    """Create a requests Session with connection pooling and our headers."""
    session = requests.Session()
    session.headers.update(HEADERS)
    session.headers.setdefault("Accept-Encoding", "gzip, deflate")
    return session


class RateLimiter:
    """Spaces requests evenly so that at most ``per_minute`` start each minute.

    Thread-safe: every worker reserves the next free slot under a lock and
    then sleeps until that slot arrives.
    """

    def __init__(
        self,
        per_minute: int = MAX_REQUESTS_PER_MINUTE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if per_minute <= 0:
            raise ValueError("per_minute must be positive")
        self.interval = 60.0 / per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def acquire(self) -> float:
        """Block until this caller may start a request. Returns the wait time."""
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
        wait = slot - now
        if wait > 0:
            self._sleep(wait)
        return wait


def _backoff(attempt: int) -> float:
    return min(RETRY_BACKOFF_BASE ** attempt, MAX_RETRY_BACKOFF) + random.uniform(0, 1)


def fetch_html(
    url: str,
    session: requests.Session,
    rate_limiter: Optional[RateLimiter] = None,
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """HTTP GET with exponential backoff on throttling and transient errors.

    Args:
        url: URL to fetch
        session: requests.Session to use
        rate_limiter: Shared limiter consulted before every attempt
        max_retries: Retry attempts for retryable failures
        sleep: Sleep function (injectable for tests)

    Returns:
        Response body as text

    Raises:
        FetchError: If the URL is invalid, the status is a non-retryable
            error, or retries are exhausted
    """
    try:
        url = validate_url(url)
    except URLValidationError as e:
        raise FetchError(f"Invalid URL: {e}", url) from e

    last_exception: Optional[Exception] = None

    for attempt in range(max_retries + 1):
        if rate_limiter is not None:
            rate_limiter.acquire()

        try:
            resp = session.get(url, timeout=REQUEST_TIMEOUT)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            last_exception = e
            if attempt < max_retries:
                backoff = _backoff(attempt)
                logger.warning(
                    f"{type(e).__name__} for {url}, backing off {backoff:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                sleep(backoff)
                continue
            raise FetchError(f"Failed to fetch {url}: {e}", url) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Failed to fetch {url}: {e}", url) from e

        if resp.status_code in RETRY_STATUS_CODES and attempt < max_retries:
            backoff = _backoff(attempt)
            logger.warning(
                f"Received {resp.status_code} for {url}, backing off {backoff:.1f}s "
                f"(attempt {attempt + 1}/{max_retries})"
            )
            sleep(backoff)
            continue

        if not resp.ok:
            raise FetchError(
                f"HTTP Error {resp.status_code}: {resp.reason} for {url}",
                url,
                status_code=resp.status_code,
            )

        return str(resp.text)

    raise FetchError(f"Failed to fetch {url} after {max_retries} retries", url) from last_exception


@dataclass
class PageOutcome:
    """Result of crawling one URL: either a value or an error."""

    url: str
    value: object = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Crawler:
    """Fetches pages on a thread pool under a shared requests-per-minute ceiling."""

    def __init__(
        self,
        max_requests_per_minute: int = MAX_REQUESTS_PER_MINUTE,
        max_workers: int = MAX_WORKERS,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        fetch: Callable[..., str] = fetch_html,
    ):
        self.max_workers = max(1, max_workers)
        self.session = session or create_session()
        self.rate_limiter = rate_limiter or RateLimiter(max_requests_per_minute)
        self._fetch = fetch

    def _process(self, url: str, handler: Callable[[str, str], object]) -> PageOutcome:
        try:
            html = self._fetch(url, self.session, self.rate_limiter)
            return PageOutcome(url=url, value=handler(html, url))
        except Exception as e:
            return PageOutcome(url=url, error=e)

    def crawl(
        self,
        urls: Iterable[str],
        handler: Callable[[str, str], object],
    ) -> Iterator[PageOutcome]:
        """Fetch each URL and run ``handler(html, url)`` on it.

        Yields one PageOutcome per URL in completion order. Fetch and handler
        exceptions are captured in the outcome rather than raised.
        """
        url_list = list(urls)
        if not url_list:
            return

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self._process, url, handler) for url in url_list]
            for future in concurrent.futures.as_completed(futures):
                yield future.result()
