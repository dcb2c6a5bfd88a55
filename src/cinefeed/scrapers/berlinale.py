"""Berlinale (Berlin International Film Festival) programme scraper."""

import json
import logging
import re
from typing import Any
from zoneinfo import ZoneInfo

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_date, parse_running_time, parse_time
from cinefeed.utils.text import clean_paragraphs, clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.berlinale.de"
BERLIN_TZ = ZoneInfo("Europe/Berlin")

_FILM_URL_RE = re.compile(r"/(?:(\d{4})/)?programme/(\d{6,})\.html$")
_RAW_FILM_ID_RE = re.compile(r"\\?/programme\\?/(\d{6,})(?=\.html|\\)")
_URL_YEAR_RE = re.compile(r"/(\d{4})/programme/")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
INITIAL_RESULT_MARKER = "initial_result:"


def extract_initial_result(html: str) -> dict[str, Any] | None:
    """
    Decode the JSON object assigned to ``initial_result:`` in a page script.

    Returns None if the marker is missing or the object is not valid JSON.
    """
    start = html.find(INITIAL_RESULT_MARKER)
    if start == -1:
        return None
    brace = html.find("{", start + len(INITIAL_RESULT_MARKER))
    if brace == -1:
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(html, brace)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


class BerlinaleScraper(BaseScraper):
    """
    Scraper for the Berlinale festival programme.

    The "on sale from today" listing links film pages
    (``/en/<year>/programme/<id>.html``); when the links are rendered by a
    script, the ids are recovered from the raw HTML. Each film page embeds its
    data as a JSON object (``initial_result: {...}``) with the title, crew,
    cast, synopsis and one entry per screening in ``events[]``.
    """

    source_id = "berlinale"
    venue_name = "Berlinale"
    base_url = BASE_URL
    timezone = BERLIN_TZ
    LISTING_URL = f"{BASE_URL}/en/programme/on-sale-from-today.html"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        listing = await fetcher.fetch(self.LISTING_URL)
        return [listing, *await self.fetch_details(fetcher, self._film_urls(listing))]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        listing, *film_pages = documents
        self._film_urls(listing)

        screenings: list[Screening] = []
        for page in film_pages:
            try:
                screenings.extend(self._parse_film_page(page))
            except FieldExtractionError as e:
                self.drop(e)
        return screenings

    def _film_urls(self, listing: RawDocument) -> list[str]:
        soup = self.soup(listing)
        urls: list[str] = []
        for a in soup.select('a[href*="/programme/"][href$=".html"]'):
            url = self.url(a.get("href"))
            if url and _FILM_URL_RE.search(url) and url not in urls:
                urls.append(url)
        if not urls:
            for film_id in _RAW_FILM_ID_RE.findall(listing.text):
                url = f"{BASE_URL}/en/{self.today.year}/programme/{film_id}.html"
                if url not in urls:
                    urls.append(url)
        if not urls:
            raise StructureChanged(self.source_id, f"no film links on {listing.url}")
        return sorted(urls)

    def _parse_film_page(self, page: RawDocument) -> list[Screening]:
        data = extract_initial_result(page.text)
        if data is None:
            raise FieldExtractionError(self.source_id, f"no initial_result data on {page.url}")

        title = clean_text(data.get("title"))
        for suffix in (" | Berlinale", " – Berlinale"):
            title = title.removesuffix(suffix)
        director = self._director(data)
        if title and director:
            title = f"{title} by {director}"

        cast = [
            clean_text(m.get("name"))
            for m in data.get("castMembers") or []
            if isinstance(m, dict) and m.get("name")
        ]
        synopsis = clean_paragraphs(_BR_RE.sub("\n\n", data.get("synopsis") or ""))
        poster_url = self._poster(data)
        running_time = self._running_time(data)

        m = _URL_YEAR_RE.search(page.url)
        year = int(m.group(1)) if m else self.today.year

        screenings: list[Screening] = []
        for event in data.get("events") or []:
            try:
                start_time = self._parse_event(event, year, title)
                screenings.append(
                    self.screening(
                        title=title,
                        start_time=start_time,
                        detail_url=page.url,
                        synopsis=synopsis,
                        cast=cast,
                        poster_url=poster_url,
                        running_time=running_time,
                        venue_name=clean_text(event.get("venueHall")) or None,
                    )
                )
            except FieldExtractionError as e:
                self.drop(e)
        return screenings

    @staticmethod
    def _director(data: dict) -> str | None:
        for member in data.get("crewMembers") or []:
            if isinstance(member, dict) and member.get("function") == "Director":
                names = member.get("names") or []
                if names and isinstance(names[0], dict) and names[0].get("name"):
                    return clean_text(names[0]["name"])
        for member in data.get("reducedCrewMembers") or []:
            name = member.get("name", "") if isinstance(member, dict) else ""
            if name.endswith(" (Director)"):
                return name.removesuffix(" (Director)")
        return None

    @staticmethod
    def _running_time(data: dict) -> int | None:
        """Length from ``meta[0]`` ("121'"), else from the first event's time block."""
        meta = data.get("meta")
        if isinstance(meta, list) and meta and isinstance(meta[0], str):
            minutes = parse_running_time(meta[0])
            if minutes:
                return minutes
        events = data.get("events")
        if isinstance(events, list) and events and isinstance(events[0], dict):
            time = events[0].get("time")
            minutes = time.get("durationInMinutes") if isinstance(time, dict) else None
            if isinstance(minutes, int) and not isinstance(minutes, bool) and minutes > 0:
                return minutes
        return None

    def _poster(self, data: dict) -> str | None:
        for still in data.get("filmstills") or []:
            try:
                uri = still["media"]["defaultImage"]["uri"]
            except (KeyError, TypeError):
                continue
            if "plakate" in uri or "poster" in uri:
                return self.url(uri)
        image = data.get("image")
        if isinstance(image, dict) and isinstance(image.get("default"), dict):
            return self.url(image["default"].get("uri"))
        return None

    def _parse_event(self, event: Any, year: int, title: str):
        if not isinstance(event, dict):
            raise FieldExtractionError(self.source_id, f"'{title}': malformed event")
        day_and_month = (event.get("displayDate") or {}).get("dayAndMonth") or ""
        time_text = (event.get("time") or {}).get("text") or ""
        day = parse_date(day_and_month, self.today)
        hm = parse_time(time_text)
        if day is None or hm is None:
            raise FieldExtractionError(
                self.source_id, f"'{title}': unparseable event {day_and_month!r} {time_text!r}"
            )
        return self.localize(day.replace(year=year), *hm)
