"""Aggregator: routes normalized screenings into feed buckets."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace

from cinefeed.routing import RoutingTable
from cinefeed.scrapers.models import Screening

logger = logging.getLogger(__name__)


def sort_key(screening: Screening) -> tuple:
    """Feed order: start time, then venue, then film title, then detail URL."""
    return (
        screening.start_time,
        screening.venue_name,
        screening.film_title,
        screening.detail_url,
    )


def aggregate(
    results: Mapping[str, Sequence[Screening]],
    routing: RoutingTable,
) -> dict[str, list[Screening]]:
    """
    Merge per-source screenings into per-bucket lists.

    Every bucket of the routing table gets an entry, empty if none of its
    sources produced anything (or all of them failed). Each screening takes
    its source's category label. Sources missing from ``results`` are
    skipped; results for sources the table does not route are ignored.

    Args:
        results: Normalized screenings keyed by source id
        routing: Routing table

    Returns:
        Screenings keyed by bucket name, in feed order
    """
    buckets: dict[str, list[Screening]] = {}
    for bucket in routing.buckets:
        merged: list[Screening] = []
        for route in bucket.sources:
            for screening in results.get(route.source_id, ()):
                merged.append(replace(screening, category=route.category_label))
        merged.sort(key=sort_key)
        buckets[bucket.name] = merged
        logger.debug(f"Bucket {bucket.name}: {len(merged)} screenings")

    unrouted = set(results) - set(routing.source_ids)
    if unrouted:
        logger.warning(f"Ignoring screenings from unrouted sources: {', '.join(sorted(unrouted))}")
    return buckets
