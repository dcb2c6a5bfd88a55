"""Cinema Porto Astra (Padova) scraper."""

import logging

from bs4 import Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import find_times, looks_like_date, parse_date, parse_running_time
from cinefeed.utils.text import split_names, strip_label, tag_text, text_lines

logger = logging.getLogger(__name__)

BASE_URL = "https://portoastra.it"

# Lines that end the schedule block on a film page
_SCHEDULE_END = ("sito ufficiale", "trailer", "info e costi", "©")
_MENU_WORDS = ("Home", "Film della settimana", "Il cinema", "Info e costi")


class PortoAstraScraper(BaseScraper):
    """
    Scraper for Cinema Porto Astra, Padova.

    The "questa settimana" page links each film (``/film/...``). A film page
    has the title in the first heading, "REGIA:", "ATTORI:" and "Durata:"
    lines followed by the synopsis, and an "ORARI" block listing the week's
    showtimes as "Venerdì 13 febbraio: 18:00 - 21:00" (or a date line followed
    by time lines).
    """

    source_id = "porto_astra"
    venue_name = "Cinema Porto Astra"
    base_url = BASE_URL
    LISTING_URL = f"{BASE_URL}/questa-settimana/"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.LISTING_URL)
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
        for a in soup.select('a[href*="/film/"]'):
            url = self.url(a.get("href"), f"{BASE_URL}/")
            if url and url not in urls:
                urls.append(url)
        if not urls:
            raise StructureChanged(self.source_id, f"no /film/ links on {listing.url}")
        return urls

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        soup = self.soup(page)
        heading = soup.find(["h1", "h2", "h3"])
        title = tag_text(heading) if isinstance(heading, Tag) else None
        if not title:
            for b in soup.find_all(["b", "strong"]):
                text = tag_text(b)
                if text and "REGIA" not in text and "ATTORI" not in text:
                    title = text
                    break

        poster_url = None
        for img in soup.find_all("img", src=True):
            if "appalcinema." in str(img["src"]):
                poster_url = self.url(img["src"], page.url)
                break

        lines = text_lines(soup)
        cast: list[str] = []
        synopsis_parts: list[str] = []
        running_time = None
        after_duration = False
        orari_idx = None
        for i, line in enumerate(lines):
            if line.upper().lstrip("# ") == "ORARI":
                orari_idx = i
                break
            if line.startswith("REGIA:"):
                cast.insert(0, f"Regia: {strip_label(line, 'REGIA')}")
            elif line.startswith("ATTORI:"):
                cast.extend(split_names(strip_label(line, "ATTORI")))
            elif line.startswith("Durata:"):
                running_time = parse_running_time(strip_label(line, "Durata"))
                after_duration = True
            elif after_duration:
                if line.startswith("Sito ufficiale") or "/" in line:
                    after_duration = False
                elif len(line) > 40 and not any(word in line for word in _MENU_WORDS):
                    synopsis_parts.append(line)
        synopsis = " ".join(synopsis_parts)

        screenings: list[Screening] = []
        if orari_idx is None:
            return screenings

        current_date = None
        for line in lines[orari_idx + 1:]:
            if line.lower().startswith(_SCHEDULE_END):
                break
            if looks_like_date(line):
                current_date = parse_date(line, self.today)
            for hour, minute in find_times(line):
                try:
                    if current_date is None:
                        raise FieldExtractionError(
                            self.source_id, f"'{title}': time {hour:02d}:{minute:02d} has no date"
                        )
                    screenings.append(
                        self.screening(
                            title=title,
                            start_time=self.localize(current_date, hour, minute),
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
