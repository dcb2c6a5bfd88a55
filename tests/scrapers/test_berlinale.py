"""Unit tests for the Berlinale programme scraper."""

from datetime import date, datetime
from pathlib import Path
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from cinefeed.errors import StructureChanged
from cinefeed.scrapers.berlinale import BASE_URL, BerlinaleScraper, extract_initial_result
from cinefeed.scrapers.models import RawDocument

BERLIN_TZ = ZoneInfo("Europe/Berlin")
FIXTURE_DIR = Path(__file__).parent / "fixtures" / "berlinale"

ROSE_URL = f"{BASE_URL}/en/2026/programme/202612345.html"
UPDATING_URL = f"{BASE_URL}/en/2026/programme/202600042.html"


def _doc(url: str, name: str) -> RawDocument:
    return RawDocument(url=url, text=(FIXTURE_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def scraper() -> BerlinaleScraper:
    return BerlinaleScraper(today=date(2026, 2, 9))


@pytest.fixture
def documents() -> list[RawDocument]:
    return [
        _doc(BerlinaleScraper.LISTING_URL, "on_sale_from_today.html"),
        _doc(UPDATING_URL, "202600042.html"),
        _doc(ROSE_URL, "202612345.html"),
    ]


class TestExtractInitialResult:
    def test_decodes_embedded_object(self) -> None:
        html = '<script>app = { initial_result: {"title": "Rose", "events": []}, locale: "en" }</script>'
        assert extract_initial_result(html) == {"title": "Rose", "events": []}

    def test_missing_marker(self) -> None:
        assert extract_initial_result("<html></html>") is None

    def test_invalid_json(self) -> None:
        assert extract_initial_result("initial_result: {title: 'Rose'}") is None


class TestBerlinaleFilmUrls:
    def test_sorted_unique_film_links(self, scraper: BerlinaleScraper, documents) -> None:
        assert scraper._film_urls(documents[0]) == [UPDATING_URL, ROSE_URL]

    def test_ids_recovered_from_script(self, scraper: BerlinaleScraper) -> None:
        doc = RawDocument(
            url=BerlinaleScraper.LISTING_URL,
            text='<script>var films = [{"url": "\\/en\\/2026\\/programme\\/202612345.html"}];</script>',
        )
        assert scraper._film_urls(doc) == [ROSE_URL]

    def test_no_links_is_structure_change(self, scraper: BerlinaleScraper) -> None:
        with pytest.raises(StructureChanged):
            scraper._film_urls(RawDocument(url=BerlinaleScraper.LISTING_URL, text="<html></html>"))


# ---------------------------------------------------------------------------
# extract: pure parsing, no HTTP
# ---------------------------------------------------------------------------


class TestBerlinaleExtract:
    def test_one_screening_per_event(self, scraper: BerlinaleScraper, documents) -> None:
        screenings = scraper.extract(documents)
        assert [(s.start_time, s.venue_name) for s in screenings] == [
            (datetime(2026, 2, 14, 19, 0, tzinfo=BERLIN_TZ), "Berlinale Palast"),
            (datetime(2026, 2, 15, 12, 30, tzinfo=BERLIN_TZ), "Haus der Berliner Festspiele"),
        ]

    def test_page_without_data_and_bad_event_are_dropped(
        self, scraper: BerlinaleScraper, documents
    ) -> None:
        scraper.extract(documents)
        assert scraper.dropped == 2

    def test_film_details(self, scraper: BerlinaleScraper, documents) -> None:
        s = scraper.extract(documents)[0]
        assert s.film_title == "Rose by Markus Schleinzer"
        assert s.detail_url == ROSE_URL
        assert s.cast == ("Sandra Hüller", "Caro Braun")
        assert s.poster_url == f"{BASE_URL}/media/plakate/rose.jpg"
        assert s.synopsis == "A woman lives as a man in a remote village.\n\nSeventeenth century."
        assert s.running_time == 121

    def test_running_time_prefers_meta(self) -> None:
        data = {"meta": ["105'", "Germany 2026"], "events": [{"time": {"durationInMinutes": 121}}]}
        assert BerlinaleScraper._running_time(data) == 105

    def test_running_time_absent(self) -> None:
        assert BerlinaleScraper._running_time({"events": [{"time": {"text": "19:00"}}]}) is None


class TestBerlinaleFetch:
    async def test_fetches_listing_then_films(self, scraper: BerlinaleScraper, documents) -> None:
        pages = {doc.url: doc for doc in documents}
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = lambda url: pages[url]

        fetched = await scraper.fetch_documents(fetcher)

        assert [d.url for d in fetched] == [BerlinaleScraper.LISTING_URL, UPDATING_URL, ROSE_URL]
