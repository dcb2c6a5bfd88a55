"""Normalizer: cleans one source's screenings into canonical form."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from zoneinfo import ZoneInfo

from cinefeed.errors import NormalizationError
from cinefeed.scrapers.models import Screening
from cinefeed.utils.text import absolute_url, clean_paragraphs, clean_text, is_absolute_http_url

logger = logging.getLogger(__name__)


@dataclass
class NormalizationResult:
    screenings: list[Screening] = field(default_factory=list)
    dropped: int = 0
    reasons: list[str] = field(default_factory=list)


def sort_key(screening: Screening) -> tuple:
    """Total order on screenings: start time, venue, title, detail URL, then the rest."""
    return (
        screening.start_time,
        screening.venue_name,
        screening.film_title,
        screening.detail_url,
        screening.synopsis or "",
        screening.cast,
        screening.poster_url or "",
    )


def normalize_one(screening: Screening, reference_tz: ZoneInfo) -> Screening:
    """
    Clean a single screening.

    Raises:
        NormalizationError: A required field is empty or the detail URL is
            not an absolute http(s) URL
    """
    film_title = clean_text(screening.film_title)
    venue_name = clean_text(screening.venue_name)
    detail_url = (screening.detail_url or "").strip()

    if not film_title:
        raise NormalizationError(f"missing film title ({detail_url or 'no URL'})")
    if not venue_name:
        raise NormalizationError(f"'{film_title}': missing venue name")
    if not is_absolute_http_url(detail_url):
        raise NormalizationError(f"'{film_title}': detail URL {detail_url!r} is not absolute")

    poster_url = absolute_url(detail_url, screening.poster_url)

    return replace(
        screening,
        film_title=film_title,
        venue_name=venue_name,
        detail_url=detail_url,
        start_time=screening.start_time.astimezone(reference_tz),
        synopsis=clean_paragraphs(screening.synopsis) or None,
        cast=tuple(name for name in (clean_text(c) for c in screening.cast) if name),
        poster_url=poster_url,
        running_time=screening.running_time if (screening.running_time or 0) > 0 else None,
        release_date=clean_text(screening.release_date) or None,
    )


def normalize(screenings: Iterable[Screening], reference_tz: ZoneInfo) -> NormalizationResult:
    """
    Normalize one source's screenings.

    Text fields are trimmed and whitespace-collapsed (synopsis paragraph
    breaks survive), start times move to ``reference_tz``, relative poster
    URLs are resolved against the detail URL. Screenings missing a required
    field are dropped and counted. Duplicates by identity key keep their
    first occurrence after a total sort, so the output does not depend on
    input order.
    """
    result = NormalizationResult()
    cleaned: list[Screening] = []
    for screening in screenings:
        try:
            cleaned.append(normalize_one(screening, reference_tz))
        except NormalizationError as e:
            result.dropped += 1
            result.reasons.append(str(e))
            logger.warning(f"{screening.source_id}: dropped screening: {e}")

    seen: set[tuple] = set()
    for screening in sorted(cleaned, key=sort_key):
        if screening.identity in seen:
            continue
        seen.add(screening.identity)
        result.screenings.append(screening)
    return result
