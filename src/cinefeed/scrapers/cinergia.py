"""Cinergia Conegliano scraper (18tickets ticketing platform)."""

import logging
import re

from bs4 import Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import looks_like_date, parse_date, parse_running_time, parse_time
from cinefeed.utils.text import split_names, strip_label, tag_text, text_lines

logger = logging.getLogger(__name__)

BASE_URL = "https://coneglianocinergia.18tickets.it"

_FILM_ID_RE = re.compile(r"/film/(\d+)(?=[/?#\"']|$)")
_TIME_LINE_RE = re.compile(r"^-?\s*\d{1,2}:\d{2}$")
_SECTION_HEADINGS = {"plot", "info", "trama"}


class CinergiaScraper(BaseScraper):
    """
    Scraper for Cinergia Conegliano.

    The 18tickets homepage links every film as ``/film/<id>``; sometimes the
    links are injected by a script, so the raw HTML is searched as a fallback.
    Film pages are requested with ``?ref_date=<today>`` so they show the
    current week. The page text is then read line by line: a date line
    ("Friday 13 February", "13/02/2026") is followed by its time lines
    ("20:30", "- 22:15").
    """

    source_id = "cinergia_conegliano"
    venue_name = "Cinergia Conegliano"
    base_url = BASE_URL

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(f"{BASE_URL}/")
        ref_date = self.today.isoformat()
        urls = [f"{BASE_URL}/film/{film_id}?ref_date={ref_date}" for film_id in self._film_ids(listing)]
        return [listing, *await self.fetch_details(fetcher, urls)]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        self._film_ids(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            screenings.extend(self._parse_film_page(page))
        return screenings

    def _film_ids(self, listing: RawDocument) -> list[str]:
        """Film ids in listing order, from anchors or (fallback) the raw HTML."""
        soup = self.soup(listing)
        ids: list[str] = []
        for a in soup.select('a[href*="/film/"]'):
            m = _FILM_ID_RE.search(str(a.get("href", "")).split("?")[0] + "?")
            if m and m.group(1) not in ids:
                ids.append(m.group(1))
        if not ids:
            for m in _FILM_ID_RE.finditer(listing.text):
                if m.group(1) not in ids:
                    ids.append(m.group(1))
        if not ids:
            raise StructureChanged(self.source_id, f"no /film/<id> links on {listing.url}")
        return ids

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        soup = self.soup(page)
        m = _FILM_ID_RE.search(page.url)
        # Canonical URL without ref_date, so item identity survives day changes
        detail_url = f"{BASE_URL}/film/{m.group(1)}" if m else page.url.split("?")[0]

        title = None
        for h in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
            text = tag_text(h)
            if text and text.lower() not in _SECTION_HEADINGS:
                title = text
                break

        poster_url = None
        og = soup.find("meta", property="og:image")
        if isinstance(og, Tag):
            poster_url = self.url(og.get("content"), page.url)

        lines = text_lines(soup)
        director = with_cast = None
        running_time = None
        synopsis_parts: list[str] = []
        in_plot = False
        current_date: str | None = None
        showtimes: list[tuple[str | None, str]] = []

        for i, line in enumerate(lines):
            lowered = line.lower()
            next_line = lines[i + 1] if i + 1 < len(lines) else None
            is_date = len(line) <= 40 and looks_like_date(line)
            if lowered.startswith("durata:"):
                running_time = parse_running_time(strip_label(line, "durata"))
            elif lowered == "director:":
                director = next_line
            elif lowered in ("with:", "con:"):
                with_cast = next_line
            elif lowered in ("plot", "trama"):
                in_plot = True
                continue
            elif in_plot:
                if lowered == "info" or is_date:
                    in_plot = False
                elif (
                    len(line) > 30
                    and "Watch the trailer" not in line
                    and "Seleziona" not in line
                    and "Select " not in line
                ):
                    synopsis_parts.append(line)

            if is_date:
                current_date = line
            elif _TIME_LINE_RE.match(line):
                showtimes.append((current_date, line.lstrip("- ")))

        cast: list[str] = []
        if director:
            cast.append(f"Regia: {director}")
        cast.extend(split_names(with_cast))
        synopsis = "\n\n".join(synopsis_parts)

        screenings: list[Screening] = []
        for date_text, time_text in showtimes:
            try:
                screenings.append(
                    self.screening(
                        title=title,
                        start_time=self._parse_showtime(date_text, time_text, title),
                        detail_url=detail_url,
                        synopsis=synopsis,
                        cast=cast,
                        poster_url=poster_url,
                        running_time=running_time,
                    )
                )
            except FieldExtractionError as e:
                self.drop(e)
        return screenings

    def _parse_showtime(self, date_text: str | None, time_text: str, title: str | None):
        day = parse_date(date_text, self.today) if date_text else None
        if day is None:
            raise FieldExtractionError(self.source_id, f"'{title}': time {time_text} has no date")
        hm = parse_time(time_text)
        if hm is None:
            raise FieldExtractionError(self.source_id, f"'{title}': unparseable time {time_text!r}")
        return self.localize(day, *hm)
