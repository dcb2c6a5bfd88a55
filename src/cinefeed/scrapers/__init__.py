"""Scraper registry mapping source ids to scraper classes."""

from datetime import date
from typing import Type

from cinefeed.scrapers.ariston_trieste import AristonTriesteScraper
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.berlinale import BerlinaleScraper
from cinefeed.scrapers.cinema_rex import CinemaRexScraper
from cinefeed.scrapers.cinemazero import CinemazeroScraper
from cinefeed.scrapers.cinergia import CinergiaScraper
from cinefeed.scrapers.cristallo import CristalloRassegneScraper
from cinefeed.scrapers.edera import MANZONI_LISTING_URL, EderaScraper
from cinefeed.scrapers.edera_rassegne import EderaRassegneScraper
from cinefeed.scrapers.enrico_pizzuti import EnricoPizzutiScraper
from cinefeed.scrapers.new_beverly import NewBeverlyScraper
from cinefeed.scrapers.porto_astra import PortoAstraScraper
from cinefeed.scrapers.space_cinema import SpaceCinemaScraper

# Registry mapping source ids to scraper classes
SCRAPER_REGISTRY: dict[str, Type[BaseScraper]] = {
    "space_silea": SpaceCinemaScraper,
    "cinema_edera": EderaScraper,
    "cinema_manzoni": EderaScraper,
    "cinergia_conegliano": CinergiaScraper,
    "cinemazero": CinemazeroScraper,
    "cinema_rex_padova": CinemaRexScraper,
    "porto_astra": PortoAstraScraper,
    "ariston_trieste": AristonTriesteScraper,
    "cristallo_rassegne": CristalloRassegneScraper,
    "edera_rassegne": EderaRassegneScraper,
    "enrico_pizzuti": EnricoPizzutiScraper,
    "berlinale": BerlinaleScraper,
    "new_beverly": NewBeverlyScraper,
}

# Constructor arguments for sources that share a scraper class
SCRAPER_CONFIGS: dict[str, dict] = {
    "space_silea": {"cinema_id": 1009},
    "cinema_manzoni": {
        "listing_url": MANZONI_LISTING_URL,
        "source_id": "cinema_manzoni",
        "venue_name": "Cinema Multisala Manzoni",
    },
}


def get_scraper(source_id: str, today: date | None = None) -> BaseScraper | None:
    """
    Get a scraper instance by source id.

    Args:
        source_id: The source id (e.g., "cinema_edera", "berlinale")
        today: Reference date for year-less listing dates (default: today)

    Returns:
        Scraper instance or None if the source id is not registered
    """
    scraper_class = SCRAPER_REGISTRY.get(source_id)
    if scraper_class:
        return scraper_class(today=today, **SCRAPER_CONFIGS.get(source_id, {}))
    return None


__all__ = [
    "SCRAPER_REGISTRY",
    "SCRAPER_CONFIGS",
    "get_scraper",
    "BaseScraper",
    "AristonTriesteScraper",
    "BerlinaleScraper",
    "CinemaRexScraper",
    "CinemazeroScraper",
    "CinergiaScraper",
    "CristalloRassegneScraper",
    "EderaRassegneScraper",
    "EderaScraper",
    "EnricoPizzutiScraper",
    "NewBeverlyScraper",
    "PortoAstraScraper",
    "SpaceCinemaScraper",
]
