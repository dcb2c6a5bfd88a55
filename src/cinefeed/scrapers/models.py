"""Data models for scrapers."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cinefeed.errors import StructureChanged


@dataclass(frozen=True)
class RawDocument:
    """A fetched page or API payload, as returned by the fetcher."""

    url: str  # Final URL after redirects
    text: str
    status_code: int = 200

    def json_payload(self, source_id: str) -> Any:
        """
        Decode the body as JSON.

        Raises:
            StructureChanged: The body is not JSON
        """
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as e:
            raise StructureChanged(source_id, f"response from {self.url} is not JSON: {e}") from e


@dataclass(frozen=True)
class Screening:
    """
    One showtime of one film at one venue.

    This is the output format that all scrapers must return. The normalizer
    cleans it up and the aggregator routes it into feed buckets.
    """

    film_title: str
    venue_name: str
    start_time: datetime  # Showing time (timezone-aware)
    detail_url: str  # Source listing page for the film, used for identity
    source_id: str
    synopsis: str | None = None
    cast: tuple[str, ...] = field(default_factory=tuple)
    poster_url: str | None = None
    running_time: int | None = None  # Minutes
    release_date: str | None = None  # As the venue publishes it: a year or a date
    category: str | None = None  # Attached by the aggregator

    def __post_init__(self) -> None:
        """Validate that start_time is timezone-aware."""
        if self.start_time.tzinfo is None or self.start_time.utcoffset() is None:
            raise ValueError("start_time must be timezone-aware")

    @property
    def identity(self) -> tuple[str, str, datetime, str]:
        """Key under which two screenings of one source are duplicates."""
        return (self.film_title, self.venue_name, self.start_time, self.detail_url)
