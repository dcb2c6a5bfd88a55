"""Cinema Cristallo (Oderzo) "Rassegna Film d'Autore" scraper."""

import logging

from bs4 import BeautifulSoup, Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import find_times, parse_date, parse_running_time
from cinefeed.utils.text import split_names, tag_text, text_lines

logger = logging.getLogger(__name__)

BASE_URL = "https://www.cinemacristallo.com"

_INFO_LABELS = ("data uscita", "durata", "genere", "proiezion", "regia", "cast")
_SYNOPSIS_SELECTORS = (
    "div.amy-single-movie div.entry-content p",
    "div.amy-single-movie div.amy-single-movie-content p",
    "div.entry-content p",
    "article div.entry-content p",
)


class CristalloRassegneScraper(BaseScraper):
    """
    Scraper for the auteur film season at Cinema Cristallo, Oderzo.

    The season page has one Visual Composer row (the ``vc_custom_...`` class)
    linking its films (``/movie/...``). A film page uses the Amy Movie theme:
    the side column ``div.row.amy-single-movie div.col-md-4`` holds the title
    and labelled lines ("Genere: ...", "Proiezione: martedì 10 febbraio ore
    21:00"); the synopsis sits in the entry content.
    """

    source_id = "cristallo_rassegne"
    venue_name = "Cinema Cristallo Oderzo"
    base_url = BASE_URL
    SEASON_URL = f"{BASE_URL}/rassegna-film-dautore/"
    SECTION_SELECTOR = "div.amy-section.wpb_row.vc_custom_1666775304691"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.SEASON_URL)
        return [listing, *await self.fetch_details(fetcher, self._film_urls(listing))]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        self._film_urls(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            screenings.extend(self._parse_film_page(page))
        return screenings

    def _film_urls(self, listing: RawDocument) -> list[str]:
        soup = self.soup(listing)
        sections = soup.select(self.SECTION_SELECTOR)
        if not sections:
            raise StructureChanged(self.source_id, f"season section not found on {listing.url}")

        urls: list[str] = []
        for section in sections:
            for a in section.select('a[href*="/movie/"]'):
                url = self.url(a.get("href"))
                if url and url not in urls:
                    urls.append(url)
        return urls

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        soup = self.soup(page)
        info = soup.select_one("div.row.amy-single-movie div.col-md-4.col-sm-4")
        lines = text_lines(info) if info is not None else []

        title = next((line for line in lines if not line.lower().startswith(_INFO_LABELS)), None)
        if not title:
            h1 = soup.find("h1")
            title = tag_text(h1) if isinstance(h1, Tag) else None

        details: list[str] = []
        cast: list[str] = []
        release_date = None
        running_time = None
        showings: list[str] = []
        for i, line in enumerate(lines):
            lowered = line.lower()
            label, sep, value = line.partition(":")
            value = value.strip()
            if lowered.startswith("genere") and value:
                details.append(f"Genere: {value}")
            elif lowered.startswith("regia") and value:
                cast.insert(0, f"Regia: {value}")
            elif lowered.startswith("cast") and value:
                cast.extend(split_names(value))
            elif lowered.startswith("data uscita") and value:
                release_date = value
            elif lowered.startswith("durata"):
                # "Durata: 01 ore 42 minuti"
                running_time = parse_running_time(value)
            elif lowered.startswith("proiezion"):
                if not value and i + 1 < len(lines):
                    value = lines[i + 1]
                if value:
                    showings.append(value)

        poster_url = None
        img = soup.select_one("div.row.amy-single-movie img")
        if img is not None:
            poster_url = self.url(img.get("src"), page.url)

        synopsis = "\n\n".join(p for p in [" | ".join(details), self._parse_synopsis(soup)] if p)

        screenings: list[Screening] = []
        for showing in showings:
            day = parse_date(showing, self.today)
            times = find_times(showing)
            if not times:
                # Date announced without a time yet
                continue
            for hour, minute in times:
                try:
                    if day is None:
                        raise FieldExtractionError(
                            self.source_id, f"'{title}': unparseable date {showing!r}"
                        )
                    screenings.append(
                        self.screening(
                            title=title,
                            start_time=self.localize(day, hour, minute),
                            detail_url=page.url,
                            synopsis=synopsis,
                            cast=cast,
                            poster_url=poster_url,
                            running_time=running_time,
                            release_date=release_date,
                        )
                    )
                except FieldExtractionError as e:
                    self.drop(e)
        return screenings

    @staticmethod
    def _parse_synopsis(soup: BeautifulSoup) -> str:
        for selector in _SYNOPSIS_SELECTORS:
            parts = [text for text in (tag_text(p) for p in soup.select(selector)) if text]
            if parts:
                return "\n\n".join(parts)
        return ""
