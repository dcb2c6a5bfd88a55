"""The New Beverly Cinema (Los Angeles) scraper."""

import logging
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup, Tag

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import find_times, parse_date, parse_running_time
from cinefeed.utils.text import split_names, tag_text

logger = logging.getLogger(__name__)

BASE_URL = "https://thenewbev.com"
LA_TZ = ZoneInfo("America/Los_Angeles")

_INFO_FIELDS = ("Writer", "Country", "Format")
_SYNOPSIS_SELECTORS = (
    ".movie__content p",
    "section.movies .movie__content p",
    ".entry-content p",
    ".post-content p",
)
MAX_SYNOPSIS_PARAGRAPHS = 8


@dataclass
class ScheduleCard:
    """One ``article.event-card`` of the schedule: a program on one date."""

    title: str
    url: str
    date_text: str
    times: list[str] = field(default_factory=list)
    poster_url: str | None = None


@dataclass
class ProgramDetails:
    synopsis: str = ""
    cast: list[str] = field(default_factory=list)
    poster_url: str | None = None
    running_time: int | None = None
    release_date: str | None = None


def program_key(url: str) -> str:
    return url.rstrip("/")


class NewBeverlyScraper(BaseScraper):
    """
    Scraper for The New Beverly Cinema, Los Angeles.

    The schedule page has one ``article.event-card`` per program and date
    (double features share a card). A card carries the weekday, month and
    day in separate spans and one ``time.event-card__time`` per showtime
    ("7:30 pm"). Program pages, fetched once per program, add the synopsis
    and a ``<dl>`` of credits.
    """

    source_id = "new_beverly"
    venue_name = "New Beverly Cinema"
    base_url = BASE_URL
    timezone = LA_TZ
    SCHEDULE_URL = f"{BASE_URL}/schedule/"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        schedule = await fetcher.fetch(self.SCHEDULE_URL)
        urls: list[str] = []
        for card in self._parse_schedule(schedule):
            if card.url not in urls:
                urls.append(card.url)
        return [schedule, *await self.fetch_details(fetcher, urls)]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        schedule, *program_pages = documents
        details = {program_key(page.url): self._parse_program_page(page) for page in program_pages}

        screenings: list[Screening] = []
        for card in self._parse_schedule(schedule):
            program = details.get(program_key(card.url), ProgramDetails())
            day = parse_date(card.date_text, self.today)
            for time_text in card.times:
                try:
                    hm = find_times(time_text)
                    if day is None or not hm:
                        raise FieldExtractionError(
                            self.source_id,
                            f"'{card.title}': unparseable showtime {card.date_text!r} {time_text!r}",
                        )
                    screenings.append(
                        self.screening(
                            title=card.title,
                            start_time=self.localize(day, *hm[0]),
                            detail_url=card.url,
                            synopsis=program.synopsis,
                            cast=program.cast,
                            poster_url=program.poster_url or card.poster_url,
                            running_time=program.running_time,
                            release_date=program.release_date,
                        )
                    )
                except FieldExtractionError as e:
                    self.drop(e)
        return screenings

    def _parse_schedule(self, schedule: RawDocument) -> list[ScheduleCard]:
        soup = self.soup(schedule)
        articles = soup.select("article.event-card")
        if not articles:
            raise StructureChanged(self.source_id, f"no event cards on {schedule.url}")

        cards: list[ScheduleCard] = []
        for article in articles:
            link = article.select_one("a[href*='/program/']")
            if link is None:
                continue
            url = self.url(link.get("href"))
            if not url or "/program/" not in url:
                continue
            title_el = article.select_one("h4.event-card__title")
            title = tag_text(title_el) if title_el is not None else ""
            if not title:
                continue

            parts = []
            for selector in ("span.event-card__month", "span.event-card__numb"):
                el = article.select_one(selector)
                if el is not None:
                    parts.append(tag_text(el).replace(",", ""))

            poster_url = None
            img = article.select_one("figure.event-card__img img")
            if img is not None:
                poster_url = self.url(img.get("src"))

            cards.append(
                ScheduleCard(
                    title=title,
                    url=program_key(url),
                    date_text=" ".join(parts),
                    times=[tag_text(t) for t in article.select("time.event-card__time")],
                    poster_url=poster_url,
                )
            )
        return cards

    def _parse_program_page(self, page: RawDocument) -> ProgramDetails:
        soup = self.soup(page)
        details = ProgramDetails()

        og = soup.find("meta", property="og:image")
        if isinstance(og, Tag):
            details.poster_url = self.url(og.get("content"), page.url)
        if not details.poster_url:
            img = soup.select_one(".movie__poster img, .movie-mast__poster-img img")
            if img is not None:
                details.poster_url = self.url(img.get("src"), page.url)

        info: list[str] = []
        for dt, dd in zip(soup.select("dl dt"), soup.select("dl dd")):
            label, value = tag_text(dt), tag_text(dd)
            if not value:
                continue
            if label.lower() == "director":
                details.cast.insert(0, f"Director: {value}")
            elif label.lower() == "starring":
                details.cast.extend(split_names(value))
            elif label == "Year":
                details.release_date = value
            elif label == "Running Time":
                details.running_time = parse_running_time(value)
            elif label in _INFO_FIELDS:
                info.append(f"{label}: {value}")

        paragraphs = self._synopsis_paragraphs(soup)
        details.synopsis = "\n\n".join(([" | ".join(info)] if info else []) + paragraphs)
        return details

    @staticmethod
    def _synopsis_paragraphs(soup: BeautifulSoup) -> list[str]:
        for selector in _SYNOPSIS_SELECTORS:
            parts: list[str] = []
            for p in soup.select(selector):
                text = tag_text(p)
                if len(text) < 50 or "ticketing." in text or "veezi.com" in text:
                    continue
                if "New Beverly blog" in text and len(text) < 150:
                    continue
                parts.append(text)
                if len(parts) >= MAX_SYNOPSIS_PARAGRAPHS:
                    break
            if parts:
                return parts
        return []
