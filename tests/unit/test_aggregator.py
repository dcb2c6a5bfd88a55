"""Unit tests for bucket aggregation."""

from datetime import datetime
from zoneinfo import ZoneInfo

from cinefeed.routing import FeedBucket, RoutingTable, SourceRoute
from cinefeed.services.aggregator import aggregate

ROME_TZ = ZoneInfo("Europe/Rome")


def _routing(bucket: FeedBucket) -> RoutingTable:
    empty = FeedBucket(
        name="trieste",
        title="Trieste",
        description="Empty feed",
        link="https://example.org/trieste",
        sources=[SourceRoute(source_id="ariston_trieste")],
    )
    return RoutingTable(buckets=[bucket, empty])


class TestAggregate:
    def test_every_bucket_has_an_entry(self, bucket: FeedBucket) -> None:
        result = aggregate({}, _routing(bucket))
        assert result == {"multisala": [], "trieste": []}

    def test_attaches_category_label(self, bucket: FeedBucket, make_screening) -> None:
        result = aggregate(
            {
                "cinema_edera": [make_screening()],
                "cinemazero": [make_screening(source_id="cinemazero", venue_name="Cinemazero")],
            },
            _routing(bucket),
        )
        categories = {s.source_id: s.category for s in result["multisala"]}
        assert categories == {
            "cinema_edera": "Cinema Multisala Edera",
            "cinemazero": "Cinemazero Pordenone",
        }

    def test_no_category_label_leaves_none(self, bucket: FeedBucket, make_screening) -> None:
        result = aggregate(
            {"ariston_trieste": [make_screening(source_id="ariston_trieste", category="x")]},
            _routing(bucket),
        )
        assert result["trieste"][0].category is None

    def test_orders_by_start_then_venue_then_title(self, bucket: FeedBucket, make_screening) -> None:
        at_20 = datetime(2024, 5, 1, 20, 0, tzinfo=ROME_TZ)
        at_18 = datetime(2024, 5, 1, 18, 0, tzinfo=ROME_TZ)
        result = aggregate(
            {
                "cinema_edera": [
                    make_screening(film_title="B", start_time=at_20),
                    make_screening(film_title="A", start_time=at_20),
                ],
                "cinemazero": [
                    make_screening(
                        source_id="cinemazero", venue_name="Cinemazero", start_time=at_20
                    ),
                    make_screening(source_id="cinemazero", venue_name="Cinemazero", start_time=at_18),
                ],
            },
            _routing(bucket),
        )
        order = [(s.start_time.hour, s.venue_name, s.film_title) for s in result["multisala"]]
        assert order == [
            (18, "Cinemazero", "Film X"),
            (20, "Cinema Multisala Edera", "A"),
            (20, "Cinema Multisala Edera", "B"),
            (20, "Cinemazero", "Film X"),
        ]

    def test_ignores_unrouted_sources(self, bucket: FeedBucket, make_screening) -> None:
        result = aggregate({"berlinale": [make_screening(source_id="berlinale")]}, _routing(bucket))
        assert result == {"multisala": [], "trieste": []}
