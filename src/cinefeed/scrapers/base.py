"""Base scraper interface for all cinema and festival sources."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from cinefeed.errors import FetchError, FieldExtractionError
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import localize
from cinefeed.utils.text import absolute_url, clean_text

if TYPE_CHECKING:
    from cinefeed.services.fetcher import Fetcher

logger = logging.getLogger(__name__)

ROME_TZ = ZoneInfo("Europe/Rome")


class BaseScraper(ABC):
    """
    Abstract base class for all source adapters.

    A scraper works in two phases so parsing can be tested without HTTP:

    - ``fetch_documents`` walks the site (listing page, detail pages, JSON
      API) and returns the raw documents, listing first;
    - ``extract`` turns those documents into ``Screening`` objects without
      any I/O.

    Whole-source problems raise ``StructureChanged``. A problem with one
    screening raises ``FieldExtractionError`` inside ``extract``, which is
    caught by the scraper, logged, and counted in ``dropped``.
    """

    source_id: str = ""
    venue_name: str = ""
    base_url: str = ""
    timezone: ZoneInfo = ROME_TZ
    # Which occurrence of an ambiguous wall time (clocks going back) to use
    dst_fold: int = 0

    def __init__(self, today: date | None = None) -> None:
        """
        Args:
            today: Reference date for year-less listing dates (default: today
                in the venue's timezone)
        """
        self.today = today or datetime.now(self.timezone).date()
        self.dropped = 0
        self.drop_reasons: list[str] = []

    @abstractmethod
    async def fetch_documents(self, fetcher: "Fetcher") -> list[RawDocument]:
        """
        Retrieve every document needed to extract this source's screenings.

        Raises:
            FetchError: The listing itself could not be retrieved
            StructureChanged: The listing container could not be found
        """

    @abstractmethod
    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        """
        Parse fetched documents into screenings. Pure: no network access.

        Raises:
            StructureChanged: The expected page or payload shape is absent
        """

    async def get_screenings(self, fetcher: "Fetcher") -> list[Screening]:
        """Fetch this source's documents and extract its screenings."""
        documents = await self.fetch_documents(fetcher)
        screenings = self.extract(documents)
        logger.info(
            f"{self.source_id}: extracted {len(screenings)} screenings "
            f"from {len(documents)} documents ({self.dropped} dropped)"
        )
        return screenings

    async def fetch_details(self, fetcher: "Fetcher", urls: Iterable[str]) -> list[RawDocument]:
        """
        Fetch detail pages one after another, skipping the ones that fail.

        A missing detail page loses that film's screenings only, so the
        failure is logged and the walk continues.
        """
        documents: list[RawDocument] = []
        for url in urls:
            try:
                documents.append(await fetcher.fetch(url))
            except FetchError as e:
                logger.warning(f"{self.source_id}: skipping detail page: {e}")
        return documents

    def soup(self, document: RawDocument) -> BeautifulSoup:
        return BeautifulSoup(document.text, "html.parser")

    def url(self, href: str | None, base: str | None = None) -> str | None:
        """Resolve a link against ``base`` (default: the source base URL)."""
        return absolute_url(base or self.base_url, href)

    def localize(self, day: date, hour: int, minute: int) -> datetime:
        """Build an aware start time in the venue's timezone."""
        return localize(day, hour, minute, self.timezone, self.dst_fold)

    def screening(
        self,
        *,
        title: str | None,
        start_time: datetime | None,
        detail_url: str | None,
        synopsis: str | None = None,
        cast: Iterable[str] = (),
        poster_url: str | None = None,
        venue_name: str | None = None,
        running_time: int | None = None,
        release_date: str | None = None,
    ) -> Screening:
        """
        Build a Screening for this source.

        Raises:
            FieldExtractionError: title, start time or detail URL is missing
        """
        title = clean_text(title)
        if not title:
            raise FieldExtractionError(self.source_id, f"missing title ({detail_url})")
        if start_time is None:
            raise FieldExtractionError(self.source_id, f"'{title}': missing start time")
        if not detail_url:
            raise FieldExtractionError(self.source_id, f"'{title}': missing detail URL")
        return Screening(
            film_title=title,
            venue_name=venue_name or self.venue_name,
            start_time=start_time,
            detail_url=detail_url,
            source_id=self.source_id,
            synopsis=synopsis or None,
            cast=tuple(cast),
            poster_url=poster_url,
            running_time=running_time,
            release_date=release_date,
        )

    def drop(self, error: FieldExtractionError) -> None:
        """Record a screening that could not be extracted."""
        self.dropped += 1
        self.drop_reasons.append(str(error))
        logger.warning(f"Dropped screening: {error}")
