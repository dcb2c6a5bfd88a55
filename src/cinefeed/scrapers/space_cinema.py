"""The Space Cinema scraper using the showings microservice API."""

import logging
from datetime import datetime

from cinefeed.config import settings
from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.text import clean_paragraphs, split_names

logger = logging.getLogger(__name__)

BASE_URL = "https://www.thespacecinema.it"


class SpaceCinemaScraper(BaseScraper):
    """
    Scraper for The Space Cinema multiplexes (default: Silea, cinema 1009).

    The films API rejects requests that arrive without the cookies the
    homepage sets, so the homepage is fetched first with the same client.
    Session start times are local wall-clock ISO strings without an offset
    ("2026-02-09T22:45:00").
    """

    source_id = "space_silea"
    venue_name = "The Space Cinema - Silea"
    base_url = BASE_URL
    API_HEADERS = {"Accept": "application/json,text/javascript,*/*;q=0.1"}

    def __init__(self, cinema_id: int = 1009, **kwargs) -> None:
        super().__init__(**kwargs)
        self.cinema_id = cinema_id

    @property
    def api_url(self) -> str:
        return f"{BASE_URL}/api/microservice/showings/cinemas/{self.cinema_id}/films"

    @property
    def showing_date(self) -> str:
        return settings.showing_date or self.today.strftime("%Y-%m-%dT00:00:00")

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        # Warm-up: sets the session cookies the API checks
        await fetcher.fetch(f"{BASE_URL}/")
        doc = await fetcher.fetch(
            self.api_url,
            params={
                "showingDate": self.showing_date,
                "minEmbargoLevel": "3",
                "includesSession": "true",
                "includeSessionAttributes": "true",
            },
            headers=self.API_HEADERS,
        )
        return [doc]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        data = documents[0].json_payload(self.source_id)
        films = data.get("result") if isinstance(data, dict) else None
        if not isinstance(films, list):
            raise StructureChanged(self.source_id, "'result' list missing from films API")

        screenings: list[Screening] = []
        for film in films:
            if isinstance(film, dict):
                screenings.extend(self._parse_film(film))
        return screenings

    def _parse_film(self, film: dict) -> list[Screening]:
        title = film.get("filmTitle")
        detail_url = self.url(film.get("filmUrl"))
        poster_url = self.url(film.get("posterImageSrc"))
        cast = split_names(film.get("cast"))
        synopsis = clean_paragraphs(film.get("synopsisShort"))
        running_time = film.get("runningTime")
        if not isinstance(running_time, int) or isinstance(running_time, bool) or running_time <= 0:
            running_time = None
        # "2025-12-17T00:00:00": the time part is always midnight
        release_date = str(film.get("releaseDate") or "").split("T")[0] or None

        screenings: list[Screening] = []
        for group in film.get("showingGroups") or []:
            for session in group.get("sessions") or []:
                try:
                    screenings.append(
                        self.screening(
                            title=title,
                            start_time=self._parse_start(session.get("startTime"), title),
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
        return screenings

    def _parse_start(self, value: str | None, title: str | None) -> datetime:
        """Parse "2026-02-09T22:45:00" as a venue-local time."""
        try:
            naive = datetime.fromisoformat(value or "")
        except ValueError as e:
            raise FieldExtractionError(self.source_id, f"'{title}': bad startTime {value!r}") from e
        if naive.tzinfo is not None:
            return naive
        return self.localize(naive.date(), naive.hour, naive.minute)
