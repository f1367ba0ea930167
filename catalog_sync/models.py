"""Data models for product records and cache metadata."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_sync.config import CURRENCY, SOURCE_NAME

__all__ = ["ProductRecord", "CacheMetadata", "utc_now_iso"]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# dataclass attribute -> serialized key
_FIELD_KEYS = {
    "url": "url",
    "name": "name",
    "brand": "brand",
    "article_number": "articleNumber",
    "ean": "ean",
    "price": "price",
    "price_ex_vat": "priceExVat",
    "currency": "currency",
    "categories": "categories",
    "description": "description",
    "features": "features",
    "specs": "specs",
    "images": "images",
    "in_stock": "inStock",
    "available_in_stores": "availableInStores",
    "rating": "rating",
    "review_count": "reviewCount",
    "vesa_sizes": "vesaSizes",
    "source": "source",
    "scraped_at": "scrapedAt",
}


@dataclass
class ProductRecord:
    """A single product page from the shop catalog.

    ``url`` is the natural key. Every other field except ``source`` and
    ``scraped_at`` may be missing; extraction is best-effort.
    """

    url: str

    name: Optional[str] = None
    brand: Optional[str] = None
    article_number: Optional[str] = None
    ean: Optional[str] = None

    price: Optional[int] = None
    price_ex_vat: Optional[float] = None
    currency: str = CURRENCY

    categories: List[str] = field(default_factory=list)
    description: Optional[str] = None
    features: List[str] = field(default_factory=list)
    specs: Dict[str, str] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)

    in_stock: bool = False
    available_in_stores: Optional[int] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    vesa_sizes: Optional[List[str]] = None

    source: str = SOURCE_NAME
    scraped_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the dataset's camelCase keys."""
        return {key: getattr(self, attr) for attr, key in _FIELD_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        """Build a record from its serialized form.

        Missing keys take the dataclass defaults and unknown keys are ignored,
        so cache entries written by older versions still load.
        """
        kwargs = {
            attr: data[key]
            for attr, key in _FIELD_KEYS.items()
            if key in data and data[key] is not None
        }
        return cls(**kwargs)


@dataclass
class CacheMetadata:
    """Snapshot written after every cache merge."""

    last_updated: str
    total_products: int
    last_run_scraped: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "totalProducts": self.total_products,
            "lastRunScraped": self.last_run_scraped,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        return cls(
            last_updated=str(data.get("lastUpdated", "")),
            total_products=int(data.get("totalProducts", 0)),
            last_run_scraped=int(data.get("lastRunScraped", 0)),
        )
