"""Narrowing discovered catalog URLs down to the ones to fetch this run."""

from typing import Callable, Iterable, List, Optional, Sequence, Set

__all__ = [
    "KeywordTransform",
    "DEFAULT_KEYWORD_TRANSFORMS",
    "normalize_keyword",
    "keyword_variants",
    "matches_keyword",
    "matches_category",
    "filter_urls",
    "select_urls",
]

KeywordTransform = Callable[[str], str]

# Applied to the normalized keyword. The plural forms are a crude
# Norwegian approximation ("veggfeste" -> "veggfester"), not grammar.
DEFAULT_KEYWORD_TRANSFORMS: List[KeywordTransform] = [
    lambda kw: kw,
    lambda kw: kw.replace(" ", "-"),
    lambda kw: kw.replace(" ", ""),
    lambda kw: kw + "r",
    lambda kw: kw + "er",
]


def normalize_keyword(keyword: Optional[str]) -> str:
    return (keyword or "").strip().lower()


def keyword_variants(
    keyword: Optional[str],
    transforms: Optional[Sequence[KeywordTransform]] = None,
) -> List[str]:
    """Derive the substrings a URL may contain to match ``keyword``.

    Returns an ordered, duplicate-free list. An empty keyword yields no
    variants.
    """
    kw = normalize_keyword(keyword)
    if not kw:
        return []

    variants: List[str] = []
    for transform in transforms if transforms is not None else DEFAULT_KEYWORD_TRANSFORMS:
        variant = transform(kw)
        if variant and variant not in variants:
            variants.append(variant)
    return variants


def matches_keyword(text: str, variants: Iterable[str]) -> bool:
    """True if the lowercased text contains any variant."""
    lowered = text.lower()
    return any(variant in lowered for variant in variants)


def matches_category(text: str, category: Optional[str]) -> bool:
    """Case-insensitive containment; an empty category matches everything."""
    cat = (category or "").strip().lower()
    if not cat:
        return True
    return cat in text.lower()


def filter_urls(
    urls: Iterable[str],
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    transforms: Optional[Sequence[KeywordTransform]] = None,
) -> List[str]:
    """Keep URLs matching the keyword variants and the category.

    Duplicates collapse to their first occurrence; discovery order is kept.
    """
    variants = keyword_variants(keyword, transforms)
    seen: Set[str] = set()
    result: List[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        if variants and not matches_keyword(url, variants):
            continue
        if not matches_category(url, category):
            continue
        result.append(url)
    return result


def select_urls(
    urls: Iterable[str],
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    max_products: Optional[int] = None,
    exclude: Optional[Set[str]] = None,
    transforms: Optional[Sequence[KeywordTransform]] = None,
) -> List[str]:
    """Produce the final ordered list of URLs to fetch.

    Args:
        urls: Discovered candidate URLs, in discovery order
        keyword: Raw keyword; empty means no keyword filter
        category: Category substring; empty means no category filter
        max_products: Cap on the filtered list; None means no cap (full index)
        exclude: URLs already cached (update mode). Removed after capping,
            so the run may fetch fewer than ``max_products`` pages.
        transforms: Keyword variant transforms (default: DEFAULT_KEYWORD_TRANSFORMS)
    """
    selected = filter_urls(urls, keyword, category, transforms)
    if max_products is not None:
        selected = selected[:max_products]
    if exclude:
        selected = [url for url in selected if url not in exclude]
    return selected
