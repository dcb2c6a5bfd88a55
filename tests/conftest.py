"""Shared test fixtures."""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from cinefeed.routing import FeedBucket, SourceRoute
from cinefeed.scrapers.models import Screening

ROME_TZ = ZoneInfo("Europe/Rome")


def _make_screening(**overrides) -> Screening:
    values = {
        "film_title": "Film X",
        "venue_name": "Cinema Multisala Edera",
        "start_time": datetime(2024, 5, 1, 20, 0, tzinfo=ROME_TZ),
        "detail_url": "https://www.cinemaedera.it/film/film-x/",
        "source_id": "cinema_edera",
    }
    values.update(overrides)
    return Screening(**values)


@pytest.fixture
def make_screening() -> Callable[..., Screening]:
    """Factory for a valid screening at Cinema Edera; override any field by keyword."""
    return _make_screening


@pytest.fixture
def bucket() -> FeedBucket:
    """Italian bucket fed by two sources."""
    return FeedBucket(
        name="multisala",
        title="Film in programmazione",
        description="Test feed",
        link="https://example.org/",
        sources=[
            SourceRoute(source_id="cinema_edera", category_label="Cinema Multisala Edera"),
            SourceRoute(source_id="cinemazero", category_label="Cinemazero Pordenone"),
        ],
    )
