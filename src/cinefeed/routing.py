"""Routing table: which sources feed which RSS bucket."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from cinefeed.errors import ConfigurationError

logger = logging.getLogger(__name__)


class SourceRoute(BaseModel):
    """One source contributing to a bucket."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    category_label: str | None = None  # Becomes the RSS <category> of its items


class FeedBucket(BaseModel):
    """A named output feed merging one or more sources."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-z0-9_-]+$")  # Also the output file stem
    title: str
    description: str
    link: str
    sources: list[SourceRoute]
    language: Literal["it", "en"] = "it"
    timezone: str = "Europe/Rome"  # Showtimes in item text are rendered in this zone

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {value!r}") from e
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def source_ids(self) -> list[str]:
        return [route.source_id for route in self.sources]


class RoutingTable(BaseModel):
    """
    Ordered feed buckets.

    Bucket names are unique and every source id appears in exactly one
    bucket, so each screening lands in exactly one feed.
    """

    model_config = ConfigDict(frozen=True)

    buckets: list[FeedBucket]

    @model_validator(mode="after")
    def _check_unique(self) -> "RoutingTable":
        names = [bucket.name for bucket in self.buckets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate bucket names: {', '.join(duplicates)}")

        owner: dict[str, str] = {}
        for bucket in self.buckets:
            for source_id in bucket.source_ids:
                if source_id in owner:
                    raise ValueError(
                        f"source {source_id!r} routed to both {owner[source_id]!r} "
                        f"and {bucket.name!r}"
                    )
                owner[source_id] = bucket.name
        return self

    @property
    def source_ids(self) -> list[str]:
        return [source_id for bucket in self.buckets for source_id in bucket.source_ids]

    def bucket(self, name: str) -> FeedBucket:
        for bucket in self.buckets:
            if bucket.name == name:
                return bucket
        raise KeyError(name)

    def bucket_for(self, source_id: str) -> FeedBucket:
        for bucket in self.buckets:
            if source_id in bucket.source_ids:
                return bucket
        raise KeyError(source_id)

    def route(self, source_id: str) -> SourceRoute:
        for bucket in self.buckets:
            for route in bucket.sources:
                if route.source_id == source_id:
                    return route
        raise KeyError(source_id)

    def validate_sources(self, registered: Iterable[str]) -> None:
        """
        Check every routed source has an adapter.

        Raises:
            ConfigurationError: A source id has no registered adapter
        """
        known = set(registered)
        unknown = [source_id for source_id in self.source_ids if source_id not in known]
        if unknown:
            raise ConfigurationError(f"no adapter registered for: {', '.join(unknown)}")

    def select(self, names: Iterable[str] | None) -> "RoutingTable":
        """
        Restrict the table to the named buckets, keeping their order.

        Raises:
            ConfigurationError: A requested bucket does not exist
        """
        if not names:
            return self
        wanted = set(names)
        missing = sorted(wanted - {bucket.name for bucket in self.buckets})
        if missing:
            raise ConfigurationError(f"unknown feed(s): {', '.join(missing)}")
        return RoutingTable(buckets=[b for b in self.buckets if b.name in wanted])


def load_routing(path: str | Path) -> RoutingTable:
    """
    Load a routing table from a JSON file.

    Raises:
        ConfigurationError: The file is missing, not JSON, or fails validation
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"cannot read routing table {path}: {e}") from e
    try:
        return RoutingTable.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid routing table {path}: {e}") from e


DEFAULT_ROUTING = RoutingTable(
    buckets=[
        FeedBucket(
            name="multisala",
            title="Film in programmazione",
            description=(
                "RSS unificato: The Space Cinema (Silea), Cinema Multisala Edera, "
                "Cinema Manzoni, Cinergia Conegliano, Cinemazero Pordenone."
            ),
            link="https://github.com/",
            sources=[
                SourceRoute(source_id="space_silea", category_label="The Space Cinema - Silea"),
                SourceRoute(source_id="cinema_edera", category_label="Cinema Multisala Edera"),
                SourceRoute(source_id="cinema_manzoni", category_label="Cinema Multisala Manzoni"),
                SourceRoute(source_id="cinergia_conegliano", category_label="Cinergia Conegliano"),
                SourceRoute(source_id="cinemazero", category_label="Cinemazero Pordenone"),
            ],
        ),
        FeedBucket(
            name="padova",
            title="Film in programmazione a Padova",
            description="Programmazione Cinema Rex Padova e Cinema Porto Astra.",
            link="https://portoastra.it/questa-settimana/",
            sources=[
                SourceRoute(source_id="cinema_rex_padova", category_label="Cinema Rex Padova"),
                SourceRoute(source_id="porto_astra", category_label="Cinema Porto Astra"),
            ],
        ),
        FeedBucket(
            name="trieste",
            title="Cinema Ariston Trieste - La Cappella Underground",
            description="Programmazione Cinema Ariston - La Cappella Underground",
            link="https://www.lacappellaunderground.org/ariston/programma/",
            sources=[SourceRoute(source_id="ariston_trieste")],
        ),
        FeedBucket(
            name="rassegne",
            title="Rassegne",
            description=(
                "Rassegne di Cinema Cristallo Oderzo, Cinema Edera e Circolo Enrico Pizzuti."
            ),
            link="https://github.com/",
            sources=[
                SourceRoute(source_id="cristallo_rassegne", category_label="Cinema Cristallo Oderzo"),
                SourceRoute(source_id="edera_rassegne", category_label="Cinema Edera"),
                SourceRoute(source_id="enrico_pizzuti", category_label="Circolo Enrico Pizzuti"),
            ],
        ),
        FeedBucket(
            name="berlinale",
            title="Berlinale - Berlin International Film Festival",
            description="Films in the Berlinale programme (on sale / in programme).",
            link="https://www.berlinale.de/en/programme/on-sale-from-today.html",
            sources=[SourceRoute(source_id="berlinale")],
            language="en",
            timezone="Europe/Berlin",
        ),
        FeedBucket(
            name="tarantino",
            title="The New Beverly Cinema",
            description=(
                "Schedule and program for The New Beverly Cinema "
                "(Quentin Tarantino's revival theater in Los Angeles)."
            ),
            link="https://thenewbev.com/schedule/",
            sources=[SourceRoute(source_id="new_beverly")],
            language="en",
            timezone="America/Los_Angeles",
        ),
    ]
)
