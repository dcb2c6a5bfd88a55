"""Scraper for the film seasons (rassegne) of Cinema Edera."""

import logging

from bs4 import Tag

from cinefeed.errors import StructureChanged
from cinefeed.scrapers.edera import EderaScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.text import tag_text, text_lines

logger = logging.getLogger(__name__)

RASSEGNE_URL = "https://www.cinemaedera.it/rassegne.html"


class EderaRassegneScraper(EderaScraper):
    """
    Scraper for Cinema Edera's rassegne (e.g. "10 e Luce").

    The rassegne page links to one page per season (``/rassegne/<slug>.html``).
    A season page has an ``<h1>`` title, a "Dal ... al ..." date range and
    links to the film pages of its titles, which use the regular Edera film
    layout. Each screening's synopsis is prefixed with the season it belongs to.
    """

    source_id = "edera_rassegne"
    venue_name = "Cinema Edera"

    def __init__(self, rassegne_url: str = RASSEGNE_URL, **kwargs) -> None:
        super().__init__(**kwargs)
        self.rassegne_url = rassegne_url

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.rassegne_url)
        season_pages = await self.fetch_details(fetcher, self._season_urls(listing))

        film_urls: list[str] = []
        for page in season_pages:
            for url in self._film_urls(page):
                if url not in film_urls:
                    film_urls.append(url)
        film_pages = await self.fetch_details(fetcher, film_urls)
        return [listing, *season_pages, *film_pages]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *pages = documents
        season_urls = set(self._season_urls(listing))

        # Film page URL → "Rassegna: <title> (<date range>)"
        seasons: dict[str, str] = {}
        film_pages: list[RawDocument] = []
        for page in pages:
            if page.url in season_urls or "/rassegne/" in page.url:
                label = self._season_label(page)
                for url in self._film_urls(page):
                    seasons.setdefault(url, label)
            else:
                film_pages.append(page)

        screenings: list[Screening] = []
        for page in film_pages:
            screenings.extend(
                self._parse_film_page(page, None, synopsis_prefix=seasons.get(page.url))
            )
        return screenings

    def _season_urls(self, listing: RawDocument) -> list[str]:
        soup = self.soup(listing)
        if soup.find("body") is None:
            raise StructureChanged(self.source_id, f"empty rassegne page {listing.url}")

        urls: list[str] = []
        for a in soup.select('a[href*="/rassegne/"]'):
            href = str(a.get("href", "")).strip()
            if not href or href.endswith("/rassegne.html"):
                continue
            url = self.url(href)
            if url and url not in urls:
                urls.append(url)
        return urls

    def _film_urls(self, season_page: RawDocument) -> list[str]:
        soup = self.soup(season_page)
        urls: list[str] = []
        for a in soup.find_all("a", href=True):
            href = str(a["href"]).strip()
            if "/rassegne/" in href or not ("/film" in href or "i-film" in href):
                continue
            url = self.url(href, season_page.url)
            if url and url not in urls:
                urls.append(url)
        return urls

    def _season_label(self, season_page: RawDocument) -> str:
        soup = self.soup(season_page)
        h1 = soup.find("h1")
        title = tag_text(h1) if isinstance(h1, Tag) else ""
        body = soup.find("body") or soup
        date_range = next((line for line in text_lines(body) if line.startswith("Dal ")), None)
        label = f"Rassegna: {title}" if title else "Rassegna"
        return f"{label} ({date_range})" if date_range else label
