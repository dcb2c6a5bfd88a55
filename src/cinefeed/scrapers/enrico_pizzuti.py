"""Circolo Cinematografico Enrico Pizzuti (Oderzo) cineforum scraper."""

import logging
import re

from bs4 import BeautifulSoup, Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_date, parse_time
from cinefeed.utils.text import split_names, strip_label, tag_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.enricopizzuti.it"

# How far up from the "Cineforum" heading to look for the film links container
MAX_CONTAINER_DEPTH = 6

_DIRECTOR_RE = re.compile(r"^regia\s*(?:di\b|:)?\s*", re.IGNORECASE)


class EnricoPizzutiScraper(BaseScraper):
    """
    Scraper for the Enrico Pizzuti film club's cineforum.

    The homepage has an ``<h5>Cineforum 2026</h5>`` heading; the nearest
    ancestor that contains ``/film/`` links holds the season's films. Each
    film page describes one screening: ``div.film-date`` ("Martedì 10
    febbraio 2026 ore 21:00"), credits in ``div.film-cast`` and the synopsis
    and still in ``div.film-content``.
    """

    source_id = "enrico_pizzuti"
    venue_name = "Circolo Enrico Pizzuti"
    base_url = BASE_URL

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(f"{BASE_URL}/")
        return [listing, *await self.fetch_details(fetcher, self._film_urls(listing))]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        self._film_urls(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            try:
                screening = self._parse_film_page(page)
            except FieldExtractionError as e:
                self.drop(e)
                continue
            if screening:
                screenings.append(screening)
        return screenings

    def _film_urls(self, listing: RawDocument) -> list[str]:
        soup = self.soup(listing)
        for h5 in soup.find_all("h5"):
            if "cineforum" not in tag_text(h5).lower():
                continue
            container = h5
            for _ in range(MAX_CONTAINER_DEPTH):
                container = container.parent
                if not isinstance(container, Tag):
                    break
                urls = self._links_in(container)
                if urls:
                    return urls
        raise StructureChanged(self.source_id, f"cineforum section not found on {listing.url}")

    def _links_in(self, container: Tag) -> list[str]:
        urls: list[str] = []
        for a in container.find_all("a", href=True):
            if "/film/" not in str(a["href"]):
                continue
            url = self.url(a["href"])
            if url and url not in urls:
                urls.append(url)
        return urls

    def _parse_film_page(self, page: RawDocument) -> Screening | None:
        soup = self.soup(page)
        container = soup.select_one("div.container.film-description")
        if container is None:
            logger.warning(f"{self.source_id}: no film description on {page.url}")
            return None

        h1 = container.find("h1")
        title = tag_text(h1) if isinstance(h1, Tag) else None

        date_el = container.select_one("div.film-date")
        date_text = tag_text(date_el) if date_el is not None else ""
        if not date_text:
            return None
        day = parse_date(date_text, self.today)
        hm = parse_time(date_text)
        if day is None or hm is None:
            raise FieldExtractionError(self.source_id, f"'{title}': unparseable date {date_text!r}")

        cast, nation = self._parse_credits(container)
        # "Italia, 2025"
        year = next((p.strip() for p in nation.split(",") if p.strip().isdigit()), None)
        synopsis, poster_url = self._parse_content(soup, page.url)
        return self.screening(
            title=title,
            start_time=self.localize(day, *hm),
            detail_url=page.url,
            synopsis="\n\n".join(p for p in [nation, synopsis] if p),
            cast=cast,
            poster_url=poster_url,
            release_date=year,
        )

    @staticmethod
    def _parse_credits(container: Tag) -> tuple[list[str], str]:
        """Director and cast names, plus the nation and year line."""
        block = container.select_one("div.film-cast")
        if block is None:
            return [], ""
        cast: list[str] = []
        director = block.select_one("div.director")
        if director is not None and tag_text(director):
            cast.append(f"Regia: {_DIRECTOR_RE.sub('', tag_text(director))}")
        el = block.select_one("div.cast")
        if el is not None:
            cast.extend(split_names(strip_label(tag_text(el), "cast")))
        nation = block.select_one("div.nazione")
        return cast, tag_text(nation) if nation is not None else ""

    def _parse_content(self, soup: BeautifulSoup, page_url: str) -> tuple[str, str | None]:
        content = soup.select_one("div.film-content")
        if content is None:
            return "", None
        text_el = content.select_one("div.film-text p")
        synopsis = tag_text(text_el) if text_el is not None else ""
        img = content.select_one("div.film-screens img")
        poster_url = self.url(img.get("src"), page_url) if img is not None else None
        return synopsis, poster_url
