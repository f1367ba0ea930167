"""Tests for mode selection and run orchestration."""

import pytest

from catalog_sync.config import RunConfig
from catalog_sync.crawler import FetchError, PageOutcome
from catalog_sync.extractor import ProductExtractor
from catalog_sync.modes import Mode, ModeController, search_cache, select_mode
from catalog_sync.sink import MemorySink
from conftest import make_record

BASE = "https://www.jula.no/catalog"
CANDIDATES = [f"{BASE}/hjem/tv-holdere/veggfeste-{i}/" for i in range(12)]


class FakeDiscoverer:
    def __init__(self, urls):
        self.urls = list(urls)
        self.calls = 0

    def discover(self):
        self.calls += 1
        return list(self.urls)


class FakeCrawler:
    """Runs the handler synchronously; URLs in ``failing`` produce errors."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.crawled = []

    def crawl(self, urls, handler):
        for url in urls:
            self.crawled.append(url)
            if url in self.failing:
                yield PageOutcome(url=url, error=FetchError("HTTP Error 500", url, 500))
            else:
                yield PageOutcome(url=url, value=handler(f"<h1>Produkt {url[-3:]}</h1>", url))


class ExplodingCollaborator:
    def discover(self):
        raise AssertionError("search-only must not discover")

    def crawl(self, urls, handler):
        raise AssertionError("search-only must not crawl")


def make_controller(config, repository, urls=CANDIDATES, failing=()):
    sink = MemorySink()
    controller = ModeController(
        config,
        repository=repository,
        sink=sink,
        discoverer=FakeDiscoverer(urls),
        crawler=FakeCrawler(failing),
        extractor=ProductExtractor(),
    )
    return controller, sink


class TestSelectMode:
    @pytest.mark.parametrize("flags,expected", [
        ({}, Mode.FILTERED_SCRAPE),
        ({"search_only": True, "full_index": True, "update_only": True}, Mode.SEARCH_ONLY),
        ({"full_index": True}, Mode.FULL_INDEX),
        ({"update_only": True}, Mode.UPDATE_ONLY),
        ({"full_index": True, "update_only": True}, Mode.FULL_INDEX),
    ])
    def test_precedence(self, flags, expected):
        assert select_mode(RunConfig(**flags)) is expected


class TestSearchCache:
    def test_matches_text_fields(self):
        records = [
            make_record(f"{BASE}/a/1/", name="Hylle", description="Passer som veggfeste"),
            make_record(f"{BASE}/a/2/", name="Hammer"),
            make_record(f"{BASE}/a/3/", name="Skap", specs={"Type": "Veggfester"}),
        ]
        found = search_cache(records, keyword="veggfeste")
        assert [r.url for r in found] == [f"{BASE}/a/1/", f"{BASE}/a/3/"]

    def test_category_matches_url_or_category_path(self):
        records = [
            make_record(f"{BASE}/verktoy/hammer-1/", categories=[]),
            make_record(f"{BASE}/x/2/", categories=["verktoy", "sager"]),
            make_record(f"{BASE}/hage/3/", categories=["hage"]),
        ]
        found = search_cache(records, category="verktoy")
        assert len(found) == 2

    def test_cap(self):
        records = [make_record(f"{BASE}/a/{i}/") for i in range(10)]
        assert len(search_cache(records, keyword="veggfeste", max_products=3)) == 3


class TestSearchOnly:
    def test_answers_from_cache_without_network(self, repository):
        repository.merge([
            make_record(f"{BASE}/a/1/", name="TV-veggfeste"),
            make_record(f"{BASE}/a/2/", name="Hammer"),
        ])
        sink = MemorySink()
        controller = ModeController(
            RunConfig(keyword="veggfeste", search_only=True),
            repository=repository,
            sink=sink,
            discoverer=ExplodingCollaborator(),
            crawler=ExplodingCollaborator(),
        )
        summary = controller.run()

        assert summary.mode is Mode.SEARCH_ONLY
        assert [r.url for r in sink.records] == [f"{BASE}/a/1/"]

    def test_no_match_yields_empty_batch(self, repository):
        repository.merge([make_record(f"{BASE}/a/1/", name="Hammer")])
        sink = MemorySink()
        controller = ModeController(
            RunConfig(keyword="nonexistent-xyz", search_only=True),
            repository=repository,
            sink=sink,
            discoverer=ExplodingCollaborator(),
            crawler=ExplodingCollaborator(),
        )
        summary = controller.run()
        assert summary.records == []
        assert sink.records == []
        # Cache is left as it was
        assert repository.count() == 1
        assert repository.get_metadata().last_run_scraped == 1

    def test_search_only_never_builds_network_collaborators(self, repository):
        controller = ModeController(
            RunConfig(search_only=True), repository=repository, sink=MemorySink()
        )
        controller.run()
        assert controller._discoverer is None
        assert controller._crawler is None


class TestScrapeModes:
    def test_filtered_scrape_honours_cap(self, repository):
        controller, sink = make_controller(RunConfig(keyword="veggfeste", max_products=5), repository)
        summary = controller.run()

        assert summary.mode is Mode.FILTERED_SCRAPE
        assert summary.discovered == 12
        assert summary.selected == 5
        assert len(sink.records) == 5
        assert controller.crawler.crawled == CANDIDATES[:5]
        assert repository.count() == 5
        assert summary.metadata.last_run_scraped == 5

    def test_no_cache_skips_merge(self, repository):
        controller, sink = make_controller(
            RunConfig(keyword="veggfeste", max_products=3, save_to_cache=False), repository
        )
        summary = controller.run()
        assert len(sink.records) == 3
        assert repository.count() == 0
        assert summary.metadata is None

    def test_full_index_has_no_cap(self, repository):
        controller, sink = make_controller(
            RunConfig(keyword="veggfeste", max_products=5, full_index=True), repository
        )
        summary = controller.run()
        assert summary.mode is Mode.FULL_INDEX
        assert len(sink.records) == 12

    def test_update_only_skips_cached_and_always_merges(self, repository):
        repository.merge([make_record(url) for url in CANDIDATES[:2] + CANDIDATES[8:]])
        controller, sink = make_controller(
            RunConfig(keyword="veggfeste", max_products=5, update_only=True, save_to_cache=False),
            repository,
        )
        summary = controller.run()

        assert summary.mode is Mode.UPDATE_ONLY
        # Cap picks the first five; the two cached ones are then dropped
        assert controller.crawler.crawled == CANDIDATES[2:5]
        # Only the two cached URLs inside the capped selection count as excluded
        assert summary.excluded_cached == 2
        assert summary.to_dict()["excludedCached"] == 2
        assert repository.count() == 9
        assert summary.metadata.last_run_scraped == 3

    def test_full_index_with_update_only(self, repository):
        repository.merge([make_record(url) for url in CANDIDATES[:4]])
        controller, sink = make_controller(
            RunConfig(full_index=True, update_only=True), repository
        )
        summary = controller.run()
        assert summary.mode is Mode.FULL_INDEX
        assert controller.crawler.crawled == CANDIDATES[4:]
        assert repository.count() == 12

    def test_failed_pages_are_counted_not_pushed(self, repository):
        failing = {CANDIDATES[1], CANDIDATES[3]}
        controller, sink = make_controller(
            RunConfig(keyword="veggfeste", max_products=5), repository, failing=failing
        )
        summary = controller.run()

        assert summary.failed == 2
        assert summary.scraped == 3
        pushed = {r.url for r in sink.records}
        assert not pushed & failing
        assert repository.get_existing_urls() == pushed

    def test_no_candidates(self, repository):
        controller, sink = make_controller(RunConfig(keyword="veggfeste"), repository, urls=[])
        summary = controller.run()
        assert summary.selected == 0
        assert sink.records == []

    def test_records_come_from_extractor(self, repository):
        controller, sink = make_controller(RunConfig(max_products=1), repository)
        controller.run()
        record = sink.records[0]
        assert record.url == CANDIDATES[0]
        assert record.name == "Produkt -0/"
        assert record.categories == ["hjem", "tv holdere"]
