"""Unit tests for the Cinema Porto Astra (Padova) scraper."""

from datetime import date, datetime
from pathlib import Path
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from cinefeed.errors import StructureChanged
from cinefeed.scrapers.models import RawDocument
from cinefeed.scrapers.porto_astra import PortoAstraScraper

ROME_TZ = ZoneInfo("Europe/Rome")
FIXTURE_DIR = Path(__file__).parent / "fixtures" / "porto_astra"

FILM_URL = "https://portoastra.it/film/la-grazia/"


def _doc(url: str, name: str) -> RawDocument:
    return RawDocument(url=url, text=(FIXTURE_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def scraper() -> PortoAstraScraper:
    return PortoAstraScraper(today=date(2026, 2, 9))


@pytest.fixture
def documents() -> list[RawDocument]:
    return [
        _doc(PortoAstraScraper.LISTING_URL, "questa_settimana.html"),
        _doc(FILM_URL, "la_grazia.html"),
    ]


class TestPortoAstraFilmUrls:
    def test_relative_and_absolute_links_collapse(self, scraper: PortoAstraScraper, documents) -> None:
        assert scraper._film_urls(documents[0]) == [FILM_URL]

    def test_no_film_links_is_structure_change(self, scraper: PortoAstraScraper) -> None:
        doc = RawDocument(url=PortoAstraScraper.LISTING_URL, text="<html><body></body></html>")
        with pytest.raises(StructureChanged):
            scraper._film_urls(doc)


# ---------------------------------------------------------------------------
# extract: pure parsing, no HTTP
# ---------------------------------------------------------------------------


class TestPortoAstraExtract:
    def test_showtimes_from_orari_block(self, scraper: PortoAstraScraper, documents) -> None:
        screenings = scraper.extract(documents)
        assert [s.start_time for s in screenings] == [
            datetime(2026, 2, 13, 18, 0, tzinfo=ROME_TZ),
            datetime(2026, 2, 13, 21, 0, tzinfo=ROME_TZ),
            datetime(2026, 2, 14, 16, 30, tzinfo=ROME_TZ),
        ]

    def test_time_without_date_is_dropped(self, scraper: PortoAstraScraper, documents) -> None:
        scraper.extract(documents)
        assert scraper.dropped == 1

    def test_film_details(self, scraper: PortoAstraScraper, documents) -> None:
        s = scraper.extract(documents)[0]
        assert s.film_title == "LA GRAZIA"
        assert s.venue_name == "Cinema Porto Astra"
        assert s.detail_url == FILM_URL
        assert s.poster_url == "https://www.appalcinema.it/locandine/la-grazia.jpg"
        assert s.cast == ("Regia: Paolo Sorrentino", "Toni Servillo", "Anna Ferzetti")
        assert s.synopsis == (
            "Mariano De Santis è un presidente della Repubblica vedovo, al termine del mandato."
        )
        assert s.running_time == 131

    def test_page_without_orari_yields_nothing(self, scraper: PortoAstraScraper, documents) -> None:
        page = RawDocument(url=FILM_URL, text="<html><h2>LA GRAZIA</h2><p>Prossimamente</p></html>")
        assert scraper.extract([documents[0], page]) == []


class TestPortoAstraFetch:
    async def test_fetches_listing_then_film(self, scraper: PortoAstraScraper, documents) -> None:
        pages = {doc.url: doc for doc in documents}
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = lambda url: pages[url]

        fetched = await scraper.fetch_documents(fetcher)

        assert [d.url for d in fetched] == [PortoAstraScraper.LISTING_URL, FILM_URL]
