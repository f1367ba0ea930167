"""Tests for keyword variants and URL selection."""

from catalog_sync.url_filter import (
    DEFAULT_KEYWORD_TRANSFORMS,
    filter_urls,
    keyword_variants,
    matches_category,
    matches_keyword,
    select_urls,
)

BASE = "https://www.jula.no/catalog"

CANDIDATES = [
    f"{BASE}/hjem/tv-holdere/veggfeste-for-tv-001/",
    f"{BASE}/hjem/tv-holdere/veggfester-sett-002/",
    f"{BASE}/verktoy/hammere/snekkerhammer-003/",
    f"{BASE}/hjem/tv-holdere/veggfesteer-004/",
    f"{BASE}/hjem/hyller/hylle-med-veggfeste-005/",
    f"{BASE}/hjem/tv-holdere/takfeste-006/",
    f"{BASE}/hjem/tv-holdere/VEGGFESTE-stor-007/",
]


class TestKeywordVariants:
    """Tests for keyword_variants."""

    def test_default_variants_for_single_word(self):
        assert keyword_variants("veggfeste") == [
            "veggfeste",
            "veggfester",
            "veggfesteer",
        ]

    def test_variants_include_hyphen_and_joined_forms(self):
        variants = keyword_variants("  TV Holder ")
        assert variants[0] == "tv holder"
        assert "tv-holder" in variants
        assert "tvholder" in variants
        assert "tv holderr" in variants
        assert "tv holderer" in variants

    def test_empty_keyword_has_no_variants(self):
        assert keyword_variants("") == []
        assert keyword_variants("   ") == []
        assert keyword_variants(None) == []

    def test_custom_transforms_replace_defaults(self):
        transforms = [lambda kw: kw, lambda kw: kw + "ne"]
        assert keyword_variants("hylle", transforms) == ["hylle", "hyllene"]

    def test_exact_keyword_is_always_a_variant(self):
        for keyword in ["drill", "tv holder", "Skrutrekker"]:
            assert keyword.strip().lower() in keyword_variants(keyword)

    def test_default_transform_list_is_replaceable(self):
        assert len(DEFAULT_KEYWORD_TRANSFORMS) == 5


class TestMatching:
    """Tests for the matching predicates."""

    def test_matches_keyword_case_insensitive(self):
        assert matches_keyword(f"{BASE}/x/VEGGFESTE-1/", ["veggfeste"])

    def test_matches_keyword_requires_some_variant(self):
        assert not matches_keyword(f"{BASE}/x/takfeste-1/", ["veggfeste", "veggfester"])

    def test_matches_category(self):
        assert matches_category(f"{BASE}/hjem/TV-holdere/x-1/", "tv-HOLDERE")
        assert not matches_category(f"{BASE}/verktoy/x-1/", "hjem")

    def test_empty_category_matches_everything(self):
        assert matches_category("anything", "")
        assert matches_category("anything", None)


class TestSelectUrls:
    """Tests for select_urls and filter_urls."""

    def test_keyword_filter_keeps_variant_matches(self):
        selected = filter_urls(CANDIDATES, keyword="veggfeste")
        assert selected == [
            CANDIDATES[0],
            CANDIDATES[1],
            CANDIDATES[3],
            CANDIDATES[4],
            CANDIDATES[6],
        ]

    def test_literal_keyword_always_survives(self):
        urls = [f"{BASE}/a/b/boremaskin-{i}/" for i in range(3)]
        assert filter_urls(urls, keyword="boremaskin") == urls

    def test_category_filter(self):
        selected = filter_urls(CANDIDATES, category="verktoy")
        assert selected == [CANDIDATES[2]]

    def test_keyword_and_category_combined(self):
        selected = filter_urls(CANDIDATES, keyword="veggfeste", category="hyller")
        assert selected == [CANDIDATES[4]]

    def test_no_filters_keeps_everything_in_order(self):
        assert filter_urls(CANDIDATES) == CANDIDATES

    def test_duplicates_collapse_to_first_occurrence(self):
        urls = [CANDIDATES[0], CANDIDATES[2], CANDIDATES[0]]
        assert filter_urls(urls) == [CANDIDATES[0], CANDIDATES[2]]

    def test_cap_truncates_in_discovery_order(self):
        selected = select_urls(CANDIDATES, keyword="veggfeste", max_products=2)
        assert selected == [CANDIDATES[0], CANDIDATES[1]]

    def test_no_cap_for_full_index(self):
        selected = select_urls(CANDIDATES, max_products=None)
        assert len(selected) == len(CANDIDATES)

    def test_exclusion_applies_after_capping(self):
        cached = {CANDIDATES[0]}
        selected = select_urls(
            CANDIDATES, keyword="veggfeste", max_products=2, exclude=cached
        )
        # The cap picked [0, 1]; removing the cached one leaves a single URL
        assert selected == [CANDIDATES[1]]

    def test_cached_urls_never_reselected(self):
        cached = set(CANDIDATES[::2])
        selected = select_urls(CANDIDATES, max_products=None, exclude=cached)
        assert not cached.intersection(selected)

    def test_selection_is_subset_of_matching_candidates(self):
        selected = select_urls(CANDIDATES, keyword="veggfeste", category="tv-holdere", max_products=10)
        assert set(selected) <= set(CANDIDATES)
        for url in selected:
            assert "tv-holdere" in url
            assert "veggfeste" in url.lower()

    def test_example_run_stays_within_cap(self):
        urls = [f"{BASE}/hjem/tv-holdere/veggfeste-{i}/" for i in range(12)]
        selected = select_urls(urls, keyword="veggfeste", max_products=5)
        assert len(selected) == 5

    def test_empty_candidates(self):
        assert select_urls([], keyword="veggfeste", max_products=5) == []
