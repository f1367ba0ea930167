"""Shared fixtures for the catalog sync test suite."""

import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from catalog_sync.db import CacheRepository, KeyValueStore
from catalog_sync.logging_config import ROOT_LOGGER
from catalog_sync.models import ProductRecord

PRODUCT_URL = "https://www.jula.no/catalog/hjem-og-husholdning/tv-holdere/veggfeste-for-tv-123456/"

PRODUCT_HTML = """
<html>
<head>
  <meta property="og:image" content="https://www.jula.no/globalassets/catalog/productimages/123456.jpg">
</head>
<body>
  <a href="/"><img src="/static/logo.svg" alt="Jula"></a>
  <h1> Veggfeste for TV 32-65" </h1>
  <a href="/varemerker/meec/">Meec</a>
  <div class="product-price"><span>1 299</span>,-</div>
  <p>Pris eks. mva: 1 039,20</p>
  <p>Artikkelnr: 123456</p>
  <p>EAN: 7330123456789</p>
  <p>Kort.</p>
  <p>Solid veggfeste som passer de fleste TV-er fra 32 til 65 tommer.</p>
  <p>Leveres med monteringsmateriell for betong og tre.</p>
  <ul>
    <li>Tiltbar 15 grader</li>
    <li>Passer VESA 200 x 200 mm og 400x400 mm</li>
    <li>Tiltbar 15 grader</li>
    <li>Se https://www.jula.no/montering</li>
    <li>Kort</li>
  </ul>
  <dl>
    <dt>Vekt</dt><dd>1.8 kg</dd>
    <dt>Farge:</dt><dd>Svart</dd>
  </dl>
  <table>
    <tr><th>Vekt</th><td>2 kg</td></tr>
    <tr><td>Maks belastning</td><td>35 kg</td></tr>
    <tr><td>Enkeltcelle</td></tr>
  </table>
  <img src="/globalassets/catalog/productimages/123456.jpg">
  <img src="/globalassets/catalog/productimages/123456_2.jpg">
  <img src="/globalassets/catalog/productimages/123456_2.jpg">
  <img src="/globalassets/catalog/icons/star.png">
  <img src="/banner/summer.jpg">
  <div class="stock">På lager i 42 varehus</div>
  <div class="reviews">4,5 av 5 (17 anmeldelser)</div>
</body>
</html>
"""


def make_record(url: str, **overrides) -> ProductRecord:
    """A record with a few fields filled in, for cache tests."""
    fields = {
        "name": "Veggfeste",
        "price": 499,
        "categories": ["hjem og husholdning"],
        "scraped_at": "2026-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return ProductRecord(url=url, **fields)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, text: str = "", reason: str = "OK"):
        self.status_code = status_code
        self.text = text
        self.content = text.encode("utf-8")
        self.reason = reason

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class FakeSession:
    """Serves canned responses by URL and records every request."""

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    def get(self, url: str, timeout: Optional[float] = None):
        self.calls.append(url)
        response = self.responses.get(url, FakeResponse(404, "", "Not Found"))
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def product_html() -> str:
    return PRODUCT_HTML


@pytest.fixture
def product_url() -> str:
    return PRODUCT_URL


@pytest.fixture
def temp_db():
    """Create a temporary database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def repository(temp_db) -> CacheRepository:
    return CacheRepository(KeyValueStore(temp_db))


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers a test attached to the package logger."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
