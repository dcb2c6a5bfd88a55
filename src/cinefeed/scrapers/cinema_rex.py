"""Cinema Rex (Padova) scraper using the site's JSON programme feed."""

import logging
from datetime import datetime, timezone

from cinefeed.errors import FieldExtractionError, StructureChanged
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawDocument, Screening
from cinefeed.utils.dates import parse_running_time
from cinefeed.utils.text import clean_paragraphs, clean_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.cinemarex.it"


def event_name_slug(title: str) -> str:
    """
    Build the ``eventName`` query value the programme page links use.

    Examples:
        "La Grazia" → "la_grazia"
        "È l'ora!"  → "__l_ora_"
    """
    return "".join(c if c.isascii() and c.isalnum() else "_" for c in title.lower())


class CinemaRexScraper(BaseScraper):
    """
    Scraper for Cinema Rex, Padova.

    The programmazione page is rendered client-side from a compact JSON
    document: ``titoli[]`` holds one entry per title with ``eventi[]`` start
    times as epoch milliseconds. Entries with ``categoria_film != "y"`` are
    theatre, music and other events and are skipped.
    """

    source_id = "cinema_rex_padova"
    venue_name = "Cinema Rex Padova"
    base_url = BASE_URL
    JSON_URL = f"{BASE_URL}/pages/rexJsonCompact.php"
    EVENT_URL = f"{BASE_URL}/programmazione/evento"

    async def fetch_documents(self, fetcher) -> list[RawDocument]:
        return [await fetcher.fetch(self.JSON_URL)]

    def extract(self, documents: list[RawDocument]) -> list[Screening]:
        data = documents[0].json_payload(self.source_id)
        titoli = data.get("titoli") if isinstance(data, dict) else None
        if not isinstance(titoli, list):
            raise StructureChanged(self.source_id, "'titoli' list missing from programme")

        screenings: list[Screening] = []
        for item in titoli:
            if not isinstance(item, dict) or item.get("categoria_film") != "y":
                continue
            screenings.extend(self._parse_title(item))
        return screenings

    def _parse_title(self, item: dict) -> list[Screening]:
        title = clean_text(item.get("titolo"))
        detail_url = f"{self.EVENT_URL}?eventName={event_name_slug(title)}"
        director = clean_text(item.get("autore"))
        cast = [f"Regia: {director}"] if director else []
        synopsis = clean_paragraphs(item.get("descrizione"))
        poster_url = self.url(item.get("locandina"))
        running_time = parse_running_time(str(item.get("durata") or ""))

        screenings: list[Screening] = []
        for evento in item.get("eventi") or []:
            try:
                start_time = self._parse_start(evento, title)
                screenings.append(
                    self.screening(
                        title=title,
                        start_time=start_time,
                        detail_url=detail_url,
                        synopsis=synopsis,
                        cast=cast,
                        poster_url=poster_url,
                        running_time=running_time,
                    )
                )
            except FieldExtractionError as e:
                self.drop(e)
        return screenings

    def _parse_start(self, evento: dict, title: str) -> datetime:
        inizio = evento.get("inizio") if isinstance(evento, dict) else None
        if not isinstance(inizio, (int, float)) or isinstance(inizio, bool):
            raise FieldExtractionError(self.source_id, f"'{title}': bad 'inizio' {inizio!r}")
        try:
            return datetime.fromtimestamp(inizio / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise FieldExtractionError(self.source_id, f"'{title}': bad 'inizio' {inizio!r}") from e
