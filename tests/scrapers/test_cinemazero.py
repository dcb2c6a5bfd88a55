"""Unit tests for the Cinemazero (Pordenone) scraper."""

from datetime import date, datetime
from pathlib import Path
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from cinefeed.errors import StructureChanged
from cinefeed.scrapers.cinemazero import CinemazeroScraper
from cinefeed.scrapers.models import RawDocument

ROME_TZ = ZoneInfo("Europe/Rome")
FIXTURE_DIR = Path(__file__).parent / "fixtures" / "cinemazero"

NOSFERATU_URL = "https://cinemazero.it/film/nosferatu/"
LA_GRAZIA_URL = "https://cinemazero.it/film/la-grazia/"


def _doc(url: str, name: str) -> RawDocument:
    return RawDocument(url=url, text=(FIXTURE_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def scraper() -> CinemazeroScraper:
    return CinemazeroScraper(today=date(2026, 2, 9))


@pytest.fixture
def documents() -> list[RawDocument]:
    return [
        _doc(CinemazeroScraper.PROGRAMME_URL, "programmazione.html"),
        _doc(NOSFERATU_URL, "nosferatu.html"),
        _doc(LA_GRAZIA_URL, "la_grazia.html"),
    ]


class TestCinemazeroFilmUrls:
    def test_unique_film_links(self, scraper: CinemazeroScraper, documents) -> None:
        assert scraper._film_urls(documents[0]) == [NOSFERATU_URL, LA_GRAZIA_URL]

    def test_no_film_links_is_structure_change(self, scraper: CinemazeroScraper) -> None:
        doc = RawDocument(url=CinemazeroScraper.PROGRAMME_URL, text="<html><a href='/'>Home</a></html>")
        with pytest.raises(StructureChanged):
            scraper._film_urls(doc)


# ---------------------------------------------------------------------------
# extract: pure parsing, no HTTP
# ---------------------------------------------------------------------------


class TestCinemazeroExtract:
    def test_schedule_stops_at_today_section(self, scraper: CinemazeroScraper, documents) -> None:
        screenings = scraper.extract(documents)
        assert [(s.film_title, s.start_time) for s in screenings] == [
            ("Nosferatu", datetime(2026, 3, 10, 16, 0, tzinfo=ROME_TZ)),
            ("Nosferatu", datetime(2026, 3, 10, 21, 15, tzinfo=ROME_TZ)),
            ("Nosferatu", datetime(2026, 3, 11, 18, 30, tzinfo=ROME_TZ)),
            ("La Grazia", datetime(2026, 2, 12, 20, 45, tzinfo=ROME_TZ)),
        ]

    def test_time_before_any_date_is_dropped(self, scraper: CinemazeroScraper, documents) -> None:
        scraper.extract(documents)
        assert scraper.dropped == 1

    def test_film_details(self, scraper: CinemazeroScraper, documents) -> None:
        s = scraper.extract(documents)[0]
        assert s.venue_name == "Cinemazero Pordenone"
        assert s.detail_url == NOSFERATU_URL
        assert s.poster_url == "https://cinemazero.it/wp-content/uploads/2026/01/nosferatu.jpg"
        assert s.cast == ("Bill Skarsgård", "Lily-Rose Depp")
        assert s.synopsis == (
            "Genere: Horror | Regia: Robert Eggers\n\n"
            "Nella Germania del 1838 un agente immobiliare parte per la Transilvania."
        )
        assert s.running_time == 132

    def test_synopsis_falls_back_to_plot_paragraph(
        self, scraper: CinemazeroScraper, documents
    ) -> None:
        s = scraper.extract(documents)[-1]
        assert s.synopsis == (
            "Mariano De Santis è un presidente della Repubblica vedovo, "
            "giunto agli ultimi mesi del suo mandato."
        )
        assert s.cast == ()
        assert s.poster_url is None
        assert s.running_time is None


class TestCinemazeroFetch:
    async def test_fetches_programme_then_films(self, scraper: CinemazeroScraper, documents) -> None:
        pages = {doc.url: doc for doc in documents}
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = lambda url: pages[url]

        fetched = await scraper.fetch_documents(fetcher)

        assert [d.url for d in fetched] == [
            CinemazeroScraper.PROGRAMME_URL,
            NOSFERATU_URL,
            LA_GRAZIA_URL,
        ]
