"""Cinema Ariston (Trieste) scraper, programmed by La Cappella Underground."""

import logging
import re

from bs4 import Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_date, parse_running_time, parse_time
from cinefeed.utils.text import split_names, tag_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.lacappellaunderground.org"

_SCREENING_SUFFIX_RE = re.compile(r"[_-]\d{12}$")
_TIME_ONLY_RE = re.compile(r"^\d{1,2}[.:]\d{2}$")
_ITALIAN_MONTH_RE = re.compile(
    r"gennaio|febbraio|marzo|aprile|maggio|giugno|luglio|agosto|settembre|ottobre|novembre|dicembre",
    re.IGNORECASE,
)
_SPAN_SELECTOR = (
    "span.elementor-icon-list-text.elementor-post-info__item, "
    "span.elementor-post-info__item--type-custom, "
    "li.elementor-icon-list-item span"
)
_SECTION_END = ("Rassegne", "In programmazione")
# Credits line: "Simon Curtis / Gran Bretagna, USA, 2025, 123′ / versione originale"
_META_LENGTH_RE = re.compile(r"\d{2,3}\s*[′']")
_YEAR_RE = re.compile(r"^\d{4}$")


def canonical_film_url(url: str) -> str:
    """
    Strip the per-screening "_YYYYMMDDHHMM" suffix from a film URL.

    The programme links each screening separately; the suffix-free URL
    identifies the film.

    Examples:
        ".../film/the-room_202602131730/" → ".../film/the-room/"
    """
    path = url.rstrip("/")
    head, _, segment = path.rpartition("/")
    if len(segment) > 13 and _SCREENING_SUFFIX_RE.search(segment):
        segment = segment[:-13]
    return f"{head}/{segment}/"


class AristonTriesteScraper(BaseScraper):
    """
    Scraper for Cinema Ariston, Trieste.

    The programme links every screening to its own film URL; those are
    collapsed to one fetch per film. Film pages are Elementor layouts whose
    ``#portfolio-single-content`` block lists, in document order, a date span
    ("Venerdì 13 febbraio"), a time span ("17.30") and extra spans
    ("v.o. sott. it.", "Ingresso ...") for each screening. Spans inside links
    belong to the "In programmazione" sidebar and are ignored.
    """

    source_id = "ariston_trieste"
    venue_name = "Cinema Ariston Trieste"
    base_url = BASE_URL
    PROGRAMME_URL = f"{BASE_URL}/ariston/programma/"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.PROGRAMME_URL)
        return [listing, *await self.fetch_details(fetcher, self._film_urls(listing))]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        self._film_urls(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            screenings.extend(self._parse_film_page(page))
        return screenings

    def _film_urls(self, listing: RawDocument) -> list[str]:
        """One URL per film, keeping the first screening link of each."""
        soup = self.soup(listing)
        seen: set[str] = set()
        urls: list[str] = []
        for a in soup.select('a[href*="/film/"]'):
            url = self.url(a.get("href"))
            if not url:
                continue
            key = canonical_film_url(url)
            if key not in seen:
                seen.add(key)
                urls.append(url)
        if not urls:
            raise StructureChanged(self.source_id, f"no /film/ links on {listing.url}")
        return urls

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        soup = self.soup(page)
        content = soup.select_one("#portfolio-single-content")
        if content is None:
            logger.warning(f"{self.source_id}: no #portfolio-single-content on {page.url}")
            return []

        h1 = content.find("h1")
        title = tag_text(h1) if isinstance(h1, Tag) else None
        detail_url = canonical_film_url(page.url)

        strings = [s.strip() for s in content.stripped_strings]
        cast_line = next((s for s in strings if s.startswith("con ") and len(s) > 4), None)
        cast = split_names(cast_line[4:]) if cast_line else ()
        release_date, running_time = self._parse_meta(strings)

        poster_url = None
        img = content.select_one('img[src*="wp-content/uploads"]')
        if img is not None:
            poster_url = self.url(img.get("src"), page.url)

        synopsis = self._parse_synopsis(content)

        screenings: list[Screening] = []
        seen_times: set[tuple[str, str]] = set()
        current_date = ""
        for span in content.select(_SPAN_SELECTOR):
            if span.find_parent("a") is not None:
                continue
            text = tag_text(span)
            if not text:
                continue
            if text in _SECTION_END:
                break
            if text.startswith(("v.", "Ingresso")):
                continue
            if _TIME_ONLY_RE.match(text):
                if not current_date or (current_date, text) in seen_times:
                    continue
                seen_times.add((current_date, text))
                try:
                    screenings.append(
                        self.screening(
                            title=title,
                            start_time=self._parse_showtime(current_date, text, title),
                            detail_url=detail_url,
                            synopsis=synopsis,
                            cast=cast,
                            poster_url=poster_url,
                            running_time=running_time,
                            release_date=release_date,
                        )
                    )
                except FieldExtractionError as e:
                    self.drop(e)
            elif any(c.isdigit() for c in text) and _ITALIAN_MONTH_RE.search(text):
                current_date = text
        return screenings

    @staticmethod
    def _parse_meta(strings: list[str]) -> tuple[str | None, int | None]:
        """Year and length from the credits line, if the page has one."""
        for s in strings:
            if "/" not in s or not _META_LENGTH_RE.search(s):
                continue
            year = next((p.strip() for p in s.split(",") if _YEAR_RE.match(p.strip())), None)
            return year, parse_running_time(s)
        return None, None

    def _parse_synopsis(self, content: Tag) -> str:
        """Paragraphs of the film block, skipping credits and ticket notes."""
        parts: list[str] = []
        for selector in ("p", "div.elementor-widget-text-editor"):
            for el in content.select(selector):
                text = tag_text(el)
                if len(text) <= 30:
                    continue
                if text in _SECTION_END:
                    break
                if text.startswith(("Ingresso riservato", "Ingressi:", "AA.VV.", "con ")):
                    continue
                if "versione originale" in text or "′" in text:
                    continue
                if text not in parts:
                    parts.append(text)
            if parts:
                break
        return "\n\n".join(parts)

    def _parse_showtime(self, date_text: str, time_text: str, title: str | None):
        day = parse_date(date_text, self.today)
        hm = parse_time(time_text)
        if day is None or hm is None:
            raise FieldExtractionError(
                self.source_id, f"'{title}': unparseable showtime {date_text!r} {time_text!r}"
            )
        return self.localize(day, *hm)
