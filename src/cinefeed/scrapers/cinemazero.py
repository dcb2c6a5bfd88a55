"""Cinemazero (Pordenone) scraper."""

import logging
import re

from bs4 import Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_date, parse_running_time, parse_time
from cinefeed.utils.text import clean_text, split_names, strip_label, tag_text, text_lines

logger = logging.getLogger(__name__)

BASE_URL = "https://cinemazero.it"
SCHEDULE_HEADING = "programmazione e orari"
# A line holding only the film length: "132 min", "95 m"
RUNNING_TIME_RE = re.compile(r"^\d{2,3}\s*(?:m|min)$", re.IGNORECASE)


class CinemazeroScraper(BaseScraper):
    """
    Scraper for Cinemazero, Pordenone.

    The programme page links every film currently showing (``/film/...``).
    A film page reads, top to bottom: the title, the synopsis, "Genere",
    "Regia" and "Cast" lines, a length line ("132 min"), then a "Programmazione
    e orari" section in which a short date line ("10 Mar") is followed by one
    line per showtime ("16:00 A", time plus hall code). The section ends at
    "Oggi al cinema".
    """

    source_id = "cinemazero"
    venue_name = "Cinemazero Pordenone"
    base_url = BASE_URL
    PROGRAMME_URL = f"{BASE_URL}/programmazione/"

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
        soup = self.soup(listing)
        urls: list[str] = []
        for a in soup.find_all("a", href=True):
            href = str(a["href"])
            if "/film/" not in href:
                continue
            url = self.url(href)
            if url and url not in urls:
                urls.append(url)
        if not urls:
            raise StructureChanged(self.source_id, f"no /film/ links on {listing.url}")
        return urls

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        soup = self.soup(page)
        h1 = soup.find("h1")
        title = tag_text(h1) if isinstance(h1, Tag) else None

        poster_url = None
        img = soup.select_one('img[alt*="Immagine del film"]')
        if img is not None:
            poster_url = self.url(img.get("src"), page.url)

        lines = text_lines(soup)
        start = 0
        if title:
            start = next((i + 1 for i, s in enumerate(lines) if s.lower() == title.lower()), 0)

        synopsis_lines: list[str] = []
        info: list[str] = []
        cast: tuple[str, ...] = ()
        running_time = None
        schedule_idx = None
        for i in range(start, len(lines)):
            line = lines[i]
            lowered = line.lower()
            if SCHEDULE_HEADING in lowered:
                schedule_idx = i
                break
            if lowered.startswith(("genere ", "genere:")):
                info.append(f"Genere: {strip_label(line, 'genere')}")
            elif lowered.startswith(("regia ", "regia:")):
                info.append(f"Regia: {strip_label(line, 'regia')}")
            elif lowered.startswith("cast"):
                cast = split_names(strip_label(line, "cast"))
            elif RUNNING_TIME_RE.match(line):
                running_time = parse_running_time(line)
            else:
                synopsis_lines.append(line)

        if not synopsis_lines:
            synopsis_lines = [self._longest_plot_paragraph(soup)]
        synopsis = "\n\n".join(p for p in [" | ".join(info), clean_text(" ".join(synopsis_lines))] if p)

        screenings: list[Screening] = []
        if schedule_idx is None:
            return screenings

        current_date = None
        for line in lines[schedule_idx + 1:]:
            if line.lower().startswith("oggi al cinema"):
                break
            if len(line) <= 12 and any(c.isdigit() for c in line) and ":" not in line:
                current_date = parse_date(line, self.today)
                continue
            hm = parse_time(line)
            if hm is None:
                continue
            try:
                if current_date is None:
                    raise FieldExtractionError(self.source_id, f"'{title}': time {line!r} has no date")
                screenings.append(
                    self.screening(
                        title=title,
                        start_time=self.localize(current_date, *hm),
                        detail_url=page.url,
                        synopsis=synopsis,
                        cast=cast,
                        poster_url=poster_url,
                        running_time=running_time,
                    )
                )
            except FieldExtractionError as e:
                self.drop(e)
        return screenings

    @staticmethod
    def _longest_plot_paragraph(soup) -> str:
        """Fallback synopsis: the longest sentence-like <p> that is not metadata."""
        best = ""
        for p in soup.find_all("p"):
            text = tag_text(p)
            lowered = text.lower()
            if len(text) < 80 or "." not in text:
                continue
            if any(word in lowered for word in ("genere", "regia", "cast", SCHEDULE_HEADING)):
                continue
            if len(text) > len(best):
                best = text
        return best
