"""Scraper for cinemas built on the Edera site template (Edera, Manzoni)."""

import logging
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_date, parse_running_time, parse_time
from cinefeed.utils.text import clean_paragraphs, split_names, tag_text

logger = logging.getLogger(__name__)

EDERA_LISTING_URL = "https://www.cinemaedera.it/i-film-della-settimana.html"
MANZONI_LISTING_URL = "https://www.cinemamanzoni.it/i-film-della-settimana.html"


def origin(url: str) -> str:
    """
    Scheme and host of a URL.

    Examples:
        "https://www.cinemamanzoni.it/i-film.html" → "https://www.cinemamanzoni.it"
    """
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


@dataclass
class FilmOptions:
    """The "Label: value" lines of a film page's ``div.movie__option``."""

    cast: tuple[str, ...] = ()
    info: list[str] = field(default_factory=list)
    release_date: str | None = None
    running_time: int | None = None


class EderaScraper(BaseScraper):
    """
    Scraper for Cinema Multisala Edera (Treviso) and sites sharing its layout.

    The weekly listing is a ``#timetable`` table whose rows link to film
    pages (``a.category__item`` with the title in ``<strong>``). Each film
    page carries the programme in ``div.time-select``: one
    ``div.time-select__group`` per day, with the date in
    ``p.time-select__place`` ("Lunedì 9 Febbraio") and one
    ``li.time-select__item`` per showtime ("17:15").
    """

    source_id = "cinema_edera"
    venue_name = "Cinema Multisala Edera"

    def __init__(
        self,
        listing_url: str = EDERA_LISTING_URL,
        source_id: str | None = None,
        venue_name: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.listing_url = listing_url
        self.base_url = origin(listing_url)
        if source_id:
            self.source_id = source_id
        if venue_name:
            self.venue_name = venue_name

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.listing_url)
        film_urls = list(self._parse_listing(listing))
        return [listing, *await self.fetch_details(fetcher, film_urls)]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        titles = self._parse_listing(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            screenings.extend(self._parse_film_page(page, titles.get(page.url)))
        return screenings

    def _parse_listing(self, listing: RawDocument) -> dict[str, str]:
        """Map film page URL → title, in listing order."""
        soup = self.soup(listing)
        table = soup.select_one("#timetable")
        if table is None:
            raise StructureChanged(self.source_id, f"#timetable not found on {listing.url}")

        films: dict[str, str] = {}
        for link in table.select("tbody tr a.category__item"):
            url = self.url(link.get("href"))
            strong = link.find("strong")
            title = tag_text(strong) if isinstance(strong, Tag) else ""
            if url and title and url not in films:
                films[url] = title
        return films

    def _parse_film_page(
        self, page: RawDocument, title: str | None, synopsis_prefix: str | None = None
    ) -> list[Screening]:
        """Parse the showtimes of one film page of the Edera layout."""
        soup = self.soup(page)
        if not title:
            h1 = soup.find("h1")
            title = tag_text(h1) if isinstance(h1, Tag) else None

        poster_url = None
        img = soup.select_one(".movie__images img.img-responsive")
        if img is not None:
            poster_url = self.url(img.get("src"), page.url)

        options = self._parse_options(soup)
        running_time = options.running_time
        movie_time = soup.select_one("p.movie__time")
        if movie_time is not None:
            running_time = parse_running_time(tag_text(movie_time)) or running_time

        synopsis_parts = [synopsis_prefix] if synopsis_prefix else []
        if options.info:
            synopsis_parts.append(" | ".join(options.info))
        describe = soup.select_one("p.movie__describe")
        if describe is not None:
            synopsis_parts.append(clean_paragraphs(describe.get_text()))
        synopsis = "\n\n".join(p for p in synopsis_parts if p)

        screenings: list[Screening] = []
        time_select = soup.select_one("div.time-select")
        if time_select is None:
            return screenings

        for group in time_select.select("div.time-select__group"):
            place = group.select_one("p.time-select__place")
            date_text = tag_text(place) if place is not None else ""
            for item in group.select("li.time-select__item"):
                try:
                    start_time = self._parse_showtime(date_text, tag_text(item), title)
                    screenings.append(
                        self.screening(
                            title=title,
                            start_time=start_time,
                            detail_url=page.url,
                            synopsis=synopsis,
                            cast=options.cast,
                            poster_url=poster_url,
                            running_time=running_time,
                            release_date=options.release_date,
                        )
                    )
                except FieldExtractionError as e:
                    self.drop(e)
        return screenings

    @staticmethod
    def _parse_options(soup: BeautifulSoup) -> FilmOptions:
        """Split ``div.movie__option`` lines into cast, year, length and other info."""
        options = FilmOptions()
        option_div = soup.select_one("div.movie__option")
        if option_div is None:
            return options
        for p in option_div.find_all("p"):
            label, sep, value = tag_text(p).partition(":")
            label, value = label.strip(), value.strip()
            if not sep or not value:
                continue
            if label == "Cast":
                options.cast = split_names(value)
            elif label == "Anno":
                options.release_date = value
            elif label == "Durata":
                options.running_time = parse_running_time(value)
            else:
                options.info.append(f"{label}: {value}")
        return options
        for p in option_div.find_all("p"):
            label, sep, value = tag_text(p).partition(":")
            if not sep:
                continue
            label, value = label.strip(), value.strip()
            if label == "Cast":
                cast = split_names(value)
            elif label != "Anno" and value:
                options.append(f"{label}: {value}")
        return cast, options

    def _parse_showtime(self, date_text: str, time_text: str, title: str | None):
        day = parse_date(date_text, self.today)
        if day is None:
            raise FieldExtractionError(self.source_id, f"'{title}': unparseable date {date_text!r}")
        token = next((t for t in time_text.split() if ":" in t), "")
        hm = parse_time(token)
        if hm is None:
            raise FieldExtractionError(self.source_id, f"'{title}': unparseable time {time_text!r}")
        return self.localize(day, *hm)
