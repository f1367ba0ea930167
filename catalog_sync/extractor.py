"""Turn one fetched product page into a ProductRecord."""

from typing import Any, Callable, Dict, Optional, Union

from bs4 import BeautifulSoup

from catalog_sync.html_utils import (
    DESCRIPTION_STRATEGIES,
    TEXT_RULES,
    TextRule,
    extract_brand,
    extract_categories,
    extract_features,
    extract_images,
    extract_name,
    extract_price,
    extract_specs,
    extract_text_field,
    extract_vesa_sizes,
    is_in_stock,
    page_text,
)
from catalog_sync.logging_config import get_logger
from catalog_sync.models import ProductRecord
from catalog_sync.url_validation import sanitize_url

__all__ = ["ProductExtractor", "extract_product"]

logger = get_logger("extractor")

# Failures a single malformed element can cause inside a rule
_FIELD_ERRORS = (AttributeError, TypeError, ValueError, KeyError, IndexError)


class ProductExtractor:
    """Best-effort field extraction for product pages.

    Each field is extracted on its own; a rule that fails leaves that one
    field empty and the rest of the record intact.

    Args:
        description_strategy: Key into DESCRIPTION_STRATEGIES or a callable
            taking the parsed page. "paragraphs" is the default.
        text_rules: Labelled-value rules applied to the page text
    """

    def __init__(
        self,
        description_strategy: Union[str, Callable[[BeautifulSoup], Optional[str]]] = "paragraphs",
        text_rules: Optional[Dict[str, TextRule]] = None,
    ):
        if callable(description_strategy):
            self.describe = description_strategy
        else:
            if description_strategy not in DESCRIPTION_STRATEGIES:
                logger.warning(
                    f"Unknown description strategy '{description_strategy}', using 'paragraphs'"
                )
                description_strategy = "paragraphs"
            self.describe = DESCRIPTION_STRATEGIES[description_strategy]
        self.text_rules = text_rules if text_rules is not None else TEXT_RULES

    def _field(self, name: str, url: str, func: Callable[[], Any], default: Any = None) -> Any:
        try:
            value = func()
        except _FIELD_ERRORS as e:
            logger.debug(f"Could not extract {name} from {url}: {e}")
            return default
        return default if value is None else value

    def _text_field(self, name: str, text: str) -> Any:
        rule = self.text_rules.get(name)
        if rule is None:
            return None
        return extract_text_field(text, rule)

    def extract(self, page: Union[str, BeautifulSoup], url: str) -> ProductRecord:
        """Extract a record from raw HTML or an already parsed page."""
        soup = page if isinstance(page, BeautifulSoup) else BeautifulSoup(page, "html.parser")
        url = sanitize_url(url)
        text = self._field("page text", url, lambda: page_text(soup), "")

        return ProductRecord(
            url=url,
            name=self._field("name", url, lambda: extract_name(soup)),
            brand=self._field("brand", url, lambda: extract_brand(soup)),
            article_number=self._field(
                "article number", url, lambda: self._text_field("article_number", text)),
            ean=self._field("ean", url, lambda: self._text_field("ean", text)),
            price=self._field("price", url, lambda: extract_price(soup)),
            price_ex_vat=self._field(
                "price ex. VAT", url, lambda: self._text_field("price_ex_vat", text)),
            categories=self._field("categories", url, lambda: extract_categories(url), []),
            description=self._field("description", url, lambda: self.describe(soup)),
            features=self._field("features", url, lambda: extract_features(soup), []),
            specs=self._field("specs", url, lambda: extract_specs(soup), {}),
            images=self._field("images", url, lambda: extract_images(soup, url), []),
            in_stock=self._field("stock", url, lambda: is_in_stock(text), False),
            available_in_stores=self._field(
                "store count", url, lambda: self._text_field("available_in_stores", text)),
            rating=self._field("rating", url, lambda: self._text_field("rating", text)),
            review_count=self._field(
                "review count", url, lambda: self._text_field("review_count", text)),
            vesa_sizes=self._field("VESA sizes", url, lambda: extract_vesa_sizes(text)),
        )

    __call__ = extract


def extract_product(html: str, url: str) -> ProductRecord:
    """Extract with the default strategy."""
    return ProductExtractor().extract(html, url)
