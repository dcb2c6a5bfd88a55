"""Unit tests for the routing table."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from cinefeed.errors import ConfigurationError
from cinefeed.routing import DEFAULT_ROUTING, FeedBucket, RoutingTable, SourceRoute, load_routing
from cinefeed.scrapers import SCRAPER_REGISTRY


def _bucket(name: str, *source_ids: str, **kwargs) -> FeedBucket:
    return FeedBucket(
        name=name,
        title=name.title(),
        description="",
        link="https://example.org/",
        sources=[SourceRoute(source_id=s) for s in source_ids],
        **kwargs,
    )


class TestDefaultRouting:
    def test_has_the_six_feeds(self) -> None:
        assert [b.name for b in DEFAULT_ROUTING.buckets] == [
            "multisala",
            "padova",
            "trieste",
            "rassegne",
            "berlinale",
            "tarantino",
        ]

    def test_routes_every_registered_source_once(self) -> None:
        assert sorted(DEFAULT_ROUTING.source_ids) == sorted(SCRAPER_REGISTRY)
        DEFAULT_ROUTING.validate_sources(SCRAPER_REGISTRY)

    def test_english_feeds(self) -> None:
        berlinale = DEFAULT_ROUTING.bucket("berlinale")
        assert berlinale.language == "en"
        assert str(berlinale.tz) == "Europe/Berlin"
        assert DEFAULT_ROUTING.bucket_for("new_beverly").name == "tarantino"

    def test_category_labels(self) -> None:
        assert DEFAULT_ROUTING.route("porto_astra").category_label == "Cinema Porto Astra"
        assert DEFAULT_ROUTING.route("ariston_trieste").category_label is None


class TestValidation:
    def test_rejects_duplicate_bucket_names(self) -> None:
        with pytest.raises(ValidationError):
            RoutingTable(buckets=[_bucket("a", "x"), _bucket("a", "y")])

    def test_rejects_source_in_two_buckets(self) -> None:
        with pytest.raises(ValidationError):
            RoutingTable(buckets=[_bucket("a", "x"), _bucket("b", "x")])

    def test_rejects_bad_bucket_name(self) -> None:
        with pytest.raises(ValidationError):
            _bucket("Not A Name", "x")

    def test_rejects_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError):
            _bucket("a", "x", timezone="Mars/Olympus")

    def test_unregistered_source(self) -> None:
        table = RoutingTable(buckets=[_bucket("a", "cinema_edera", "nowhere")])
        with pytest.raises(ConfigurationError, match="nowhere"):
            table.validate_sources(SCRAPER_REGISTRY)


class TestSelect:
    def test_keeps_table_order(self) -> None:
        selected = DEFAULT_ROUTING.select(["tarantino", "padova"])
        assert [b.name for b in selected.buckets] == ["padova", "tarantino"]

    def test_none_selects_everything(self) -> None:
        assert DEFAULT_ROUTING.select(None) is DEFAULT_ROUTING

    def test_unknown_feed(self) -> None:
        with pytest.raises(ConfigurationError, match="nope"):
            DEFAULT_ROUTING.select(["padova", "nope"])


class TestLoadRouting:
    def test_loads_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "routing.json"
        path.write_text(
            json.dumps(
                {
                    "buckets": [
                        {
                            "name": "veneto",
                            "title": "Veneto",
                            "description": "Edera and Rex",
                            "link": "https://example.org/",
                            "sources": [
                                {"source_id": "cinema_edera", "category_label": "Edera"},
                                {"source_id": "cinema_rex_padova"},
                            ],
                        }
                    ]
                }
            )
        )
        table = load_routing(path)
        assert table.bucket("veneto").source_ids == ["cinema_edera", "cinema_rex_padova"]
        assert table.bucket("veneto").language == "it"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_routing(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "routing.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_routing(path)

    def test_invalid_table(self, tmp_path: Path) -> None:
        path = tmp_path / "routing.json"
        path.write_text(json.dumps({"buckets": [{"name": "a"}]}))
        with pytest.raises(ConfigurationError):
            load_routing(path)
