"""HTML parsing and extraction rules for product pages.

Every function here takes an already-parsed page and returns a value or
None/empty. They are combined into records by ``catalog_sync.extractor``.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from catalog_sync.config import BRAND_PATH_MARKER, CATALOG_PATH_MARKER
from catalog_sync.url_validation import is_image_source_allowed

__all__ = [
    "TextRule",
    "TEXT_RULES",
    "STOCK_PHRASES",
    "DESCRIPTION_STRATEGIES",
    "parse_int",
    "parse_locale_float",
    "page_text",
    "extract_text_field",
    "extract_name",
    "extract_brand",
    "extract_price",
    "extract_categories",
    "describe_from_paragraphs",
    "describe_from_element",
    "extract_features",
    "extract_specs",
    "extract_images",
    "is_in_stock",
    "extract_vesa_sizes",
]

MAX_FEATURES = 20
MAX_IMAGES = 10
MAX_SPEC_KEY_LENGTH = 99
DESCRIPTION_MAX_LENGTH = 500

IMAGE_INCLUDE_MARKERS = ("catalog", "product")
IMAGE_EXCLUDE_MARKERS = ("logo", "icon")

STOCK_PHRASES = ("på lager", "på nettlager")
# "Ikke på lager" must not count as in stock
STOCK_NEGATION = "ikke "

PRICE_DIGITS_RE = re.compile(r"(\d[\d\s]*)")
VESA_RE = re.compile(r"(\d{2,3})\s*x\s*(\d{2,3})\s*mm", re.IGNORECASE)

# Norwegian number: optional space-grouped thousands, comma decimals
LOCALE_NUMBER = r"(\d+(?:[ \u00a0]\d{3})*(?:,\d+)?)"


# =============================================================================
# Value parsers
# =============================================================================

def parse_int(text: str) -> int:
    """Parse an integer that may use spaces as thousand separators."""
    return int(re.sub(r"\s+", "", text))


def parse_locale_float(text: str) -> float:
    """Parse a number written with comma decimals ("1 199,50" -> 1199.5)."""
    cleaned = re.sub(r"\s+", "", text)
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    return float(cleaned)


# =============================================================================
# Declarative text rules
# =============================================================================

@dataclass
class TextRule:
    """A labelled value somewhere in the page text.

    ``value`` must contain exactly one capture group. By default the label
    precedes the value ("Artikkelnr: 123"); ``value_first`` flips that
    ("4,5 av 5").
    """

    label: str
    value: str
    parser: Callable[[str], Any] = str
    separator: str = r"[:\s]*"
    value_first: bool = False
    flags: int = re.IGNORECASE
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False)

    @property
    def pattern(self) -> re.Pattern:
        if self._compiled is None:
            if self.value_first:
                source = self.value + self.separator + self.label
            else:
                source = self.label + self.separator + self.value
            self._compiled = re.compile(source, self.flags)
        return self._compiled

    def search(self, text: str) -> Optional[Any]:
        match = self.pattern.search(text)
        if not match:
            return None
        return self.parser(match.group(1))


TEXT_RULES: Dict[str, TextRule] = {
    "article_number": TextRule(
        label=r"Artikkelnr\.?",
        value=r"(\d+)",
    ),
    "ean": TextRule(
        label=r"EAN(?:-kode|-nummer)?",
        value=r"(\d{13})(?!\d)",
    ),
    "price_ex_vat": TextRule(
        label=r"eks(?:kl)?\.?\s*mva\.?",
        value=LOCALE_NUMBER,
        parser=parse_locale_float,
        separator=r"[:\s]*(?:kr\.?\s*)?",
    ),
    "available_in_stores": TextRule(
        label=r"(?:På lager|Tilgjengelig) i",
        value=r"(\d+)(?=\s*(?:varehus|butikker))",
        parser=int,
        separator=r"\s*",
    ),
    "rating": TextRule(
        # "4,5 av 5 stjerner" or "4,5 av 5 (17 anmeldelser)", not "Bilde 1 av 5"
        label=r"av 5(?=\s*(?:stjerner|\(?\s*\d+\s*(?:anmeldelser|omtaler|vurderinger)))",
        value=r"(\d(?:[.,]\d+)?)",
        parser=parse_locale_float,
        separator=r"\s*",
        value_first=True,
    ),
    "review_count": TextRule(
        label=r"(?:anmeldelser|omtaler|vurderinger)",
        value=r"(\d+)",
        parser=int,
        separator=r"\s*",
        value_first=True,
    ),
}


def page_text(soup: BeautifulSoup) -> str:
    """All visible text of the page, whitespace-joined."""
    root = soup.body or soup
    return root.get_text(" ", strip=True)


def extract_text_field(text: str, rule: TextRule) -> Optional[Any]:
    """Apply one text rule. Unparseable matches count as absent."""
    try:
        return rule.search(text)
    except ValueError:
        return None


# =============================================================================
# Element-based fields
# =============================================================================

def _first_text(soup: BeautifulSoup, selector: str) -> Optional[str]:
    el = soup.select_one(selector)
    if el is None:
        return None
    text = el.get_text(" ", strip=True)
    return text or None


def extract_name(soup: BeautifulSoup) -> Optional[str]:
    return _first_text(soup, "h1")


def extract_brand(soup: BeautifulSoup, marker: str = BRAND_PATH_MARKER) -> Optional[str]:
    return _first_text(soup, f'a[href*="{marker}"]')


def extract_price(soup: BeautifulSoup) -> Optional[int]:
    """Price in whole kroner.

    Reads the first element whose class mentions "price"; falls back to a
    ``data-price`` attribute when that yields no digits.
    """
    el = soup.select_one('[class*="price"]')
    if el is not None:
        match = PRICE_DIGITS_RE.search(el.get_text(" ", strip=True))
        if match:
            return parse_int(match.group(1))

    attr_el = soup.select_one("[data-price]")
    if attr_el is not None:
        match = PRICE_DIGITS_RE.search(str(attr_el.get("data-price", "")))
        if match:
            return parse_int(match.group(1))
    return None


def extract_categories(url: str, marker: str = CATALOG_PATH_MARKER) -> List[str]:
    """Category path from the product URL.

    ``/catalog/verktoy/handverktoy/hammer-123/`` -> ["verktoy", "handverktoy"]
    """
    parts = url.split(marker, 1)
    if len(parts) < 2:
        return []
    path = re.split(r"[?#]", parts[1], maxsplit=1)[0]
    segments = [s for s in path.split("/") if s]
    return [s.replace("-", " ") for s in segments[:-1]]


# =============================================================================
# Description strategies
# =============================================================================

def describe_from_paragraphs(soup: BeautifulSoup) -> Optional[str]:
    """Join all paragraphs of 21-1999 characters with blank lines."""
    parts = []
    for p in soup.find_all("p"):
        text = p.get_text(" ", strip=True)
        if 20 < len(text) < 2000:
            parts.append(text)
    return "\n\n".join(parts) if parts else None


def describe_from_element(
    soup: BeautifulSoup, max_length: int = DESCRIPTION_MAX_LENGTH
) -> Optional[str]:
    """Text of the first element whose class mentions "description", truncated."""
    text = _first_text(soup, '[class*="description"]')
    return text[:max_length] if text else None


DescriptionStrategy = Callable[[BeautifulSoup], Optional[str]]

DESCRIPTION_STRATEGIES: Dict[str, DescriptionStrategy] = {
    "paragraphs": describe_from_paragraphs,
    "element": describe_from_element,
}


# =============================================================================
# Lists and mappings
# =============================================================================

def extract_features(soup: BeautifulSoup, limit: int = MAX_FEATURES) -> List[str]:
    """Bullet points of 6-199 characters that are not links, first occurrence wins."""
    features: List[str] = []
    for li in soup.find_all("li"):
        text = li.get_text(" ", strip=True)
        if not 5 < len(text) < 200 or "http" in text:
            continue
        if text not in features:
            features.append(text)
            if len(features) >= limit:
                break
    return features


def extract_specs(soup: BeautifulSoup) -> Dict[str, str]:
    """Specifications from definition lists, then from two-column table rows.

    Table rows are scanned last, so on a duplicate label the table value wins.
    """
    specs: Dict[str, str] = {}

    def _put(key: str, value: str) -> None:
        key = key.strip().rstrip(":").strip()
        value = value.strip()
        if key and value and len(key) <= MAX_SPEC_KEY_LENGTH:
            specs[key] = value

    # Each term takes the definition right after it; a term followed by
    # another term has no value
    for dl in soup.find_all("dl"):
        for dt in dl.find_all("dt"):
            dd = dt.find_next_sibling(["dd", "dt"])
            if dd is not None and dd.name == "dd":
                _put(dt.get_text(" ", strip=True), " ".join(dd.stripped_strings))

    for tr in soup.find_all("tr"):
        cells = tr.find_all(["th", "td"], recursive=False)
        if len(cells) >= 2:
            _put(cells[0].get_text(" ", strip=True), " ".join(cells[1].stripped_strings))

    return specs


def _image_source(img) -> Optional[str]:
    # Lazy-loaded images keep a data: placeholder in src and the real URL in data-src
    for attr in ("src", "data-src"):
        value = img.get(attr)
        if not value or not isinstance(value, str):
            continue
        value = value.strip()
        if urlparse(value).scheme.lower() in ("", "http", "https"):
            return value
    return None


def extract_images(
    soup: BeautifulSoup,
    page_url: str,
    limit: int = MAX_IMAGES,
    include: Sequence[str] = IMAGE_INCLUDE_MARKERS,
    exclude: Sequence[str] = IMAGE_EXCLUDE_MARKERS,
) -> List[str]:
    """Product images in page order, og:image first, deduplicated and capped."""
    images: List[str] = []
    for img in soup.find_all("img"):
        src = _image_source(img)
        if not src:
            continue
        lowered = src.lower()
        if not any(m in lowered for m in include) or any(m in lowered for m in exclude):
            continue
        absolute = urljoin(page_url, src)
        if is_image_source_allowed(absolute) and absolute not in images:
            images.append(absolute)

    og_image = soup.find("meta", property="og:image")
    if og_image and og_image.get("content"):
        primary = urljoin(page_url, og_image["content"].strip())
        if is_image_source_allowed(primary) and primary not in images:
            images.insert(0, primary)

    return images[:limit]


# =============================================================================
# Text flags
# =============================================================================

def is_in_stock(text: str, phrases: Sequence[str] = STOCK_PHRASES) -> bool:
    """True when some stock phrase appears without a preceding "ikke"."""
    pattern = "(?<!" + re.escape(STOCK_NEGATION) + ")(?:" + "|".join(map(re.escape, phrases)) + ")"
    return re.search(pattern, text.lower()) is not None


def extract_vesa_sizes(text: str) -> Optional[List[str]]:
    """Wall-mount hole patterns such as "100x100 mm", deduplicated."""
    sizes: List[str] = []
    for width, height in VESA_RE.findall(text):
        size = f"{width}x{height} mm"
        if size not in sizes:
            sizes.append(size)
    return sizes or None
