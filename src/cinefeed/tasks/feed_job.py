"""Feed run: scrape every routed source and rebuild every feed bucket."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from cinefeed.config import settings
from cinefeed.errors import (
    AdapterError,
    ConfigurationError,
    FetchError,
    FieldExtractionError,
    StructureChanged,
)
from cinefeed.feeds import builder
from cinefeed.feeds.store import FeedStore
from cinefeed.routing import DEFAULT_ROUTING, RoutingTable, load_routing
from cinefeed.scrapers import SCRAPER_REGISTRY, BaseScraper, get_scraper
from cinefeed.scrapers.models import Screening
from cinefeed.services.aggregator import aggregate
from cinefeed.services.fetcher import Fetcher
from cinefeed.services.normalizer import normalize
from cinefeed.tasks.report import RunReport, SourceOutcome

logger = logging.getLogger(__name__)

ScraperFactory = Callable[[str, date | None], BaseScraper | None]


def default_routing() -> RoutingTable:
    """The routing table from ``settings.routing_file``, or the built-in one."""
    if settings.routing_file:
        return load_routing(settings.routing_file)
    return DEFAULT_ROUTING


async def _scrape_source(
    scraper: BaseScraper,
    outcome: SourceOutcome,
    reference_tz: ZoneInfo,
) -> list[Screening]:
    async with Fetcher(scraper.source_id) as fetcher:
        screenings = await scraper.get_screenings(fetcher)
    outcome.extracted = len(screenings)
    outcome.dropped_extraction = scraper.dropped

    result = normalize(screenings, reference_tz)
    outcome.dropped_normalization = result.dropped
    outcome.dropped_reasons = [*scraper.drop_reasons, *result.reasons]
    return result.screenings


def _fail(outcome: SourceOutcome, kind: str, error: BaseException | str) -> None:
    outcome.status = "failed"
    outcome.error_kind = kind
    outcome.error = str(error)


async def _run_one(
    scraper: BaseScraper,
    outcome: SourceOutcome,
    reference_tz: ZoneInfo,
) -> list[Screening] | None:
    """Scrape one source; every failure is recorded on ``outcome`` and returns None."""
    source_id = scraper.source_id
    try:
        return await asyncio.wait_for(
            _scrape_source(scraper, outcome, reference_tz),
            timeout=settings.source_timeout,
        )
    except asyncio.TimeoutError:
        logger.error(f"{source_id}: timed out after {settings.source_timeout}s")
        _fail(outcome, "timeout", f"timed out after {settings.source_timeout}s")
    except FetchError as e:
        logger.error(f"{source_id}: fetch failed: {e}")
        _fail(outcome, "fetch", e)
    except StructureChanged as e:
        logger.error(f"{source_id}: listing structure changed: {e}")
        _fail(outcome, "structure", e)
    except FieldExtractionError as e:
        logger.error(f"{source_id}: extraction failed: {e}")
        _fail(outcome, "extraction", e)
    except AdapterError as e:
        logger.error(f"{source_id}: adapter error: {e}")
        _fail(outcome, "structure", e)
    except Exception as e:
        logger.error(f"Error scraping {source_id}: {e}", exc_info=True)
        _fail(outcome, "unexpected", f"{type(e).__name__}: {e}")
    return None


async def _worker(
    queue: "asyncio.Queue[tuple[BaseScraper, SourceOutcome]]",
    results: dict[str, list[Screening]],
    reference_tz: ZoneInfo,
) -> None:
    while True:
        try:
            scraper, outcome = queue.get_nowait()
        except asyncio.QueueEmpty:
            return
        screenings = await _run_one(scraper, outcome, reference_tz)
        if screenings is not None:
            results[scraper.source_id] = screenings
            logger.info(f"{scraper.source_id}: {len(screenings)} screenings")
        queue.task_done()


async def run_feeds(
    routing: RoutingTable | None = None,
    *,
    store: FeedStore | None = None,
    only_buckets: Iterable[str] | None = None,
    now: datetime | None = None,
    scraper_factory: ScraperFactory = get_scraper,
) -> RunReport:
    """
    Scrape all routed sources and rewrite their feeds.

    A failing source never affects its siblings: it is reported, and its
    items in the previous document are carried forward. Feeds are written
    only after every bucket has been built, so a run cancelled earlier
    leaves the published feeds untouched.

    Args:
        routing: Routing table (default: ``settings.routing_file`` or the built-in table)
        store: Output store (default: ``settings.output_dir``)
        only_buckets: Restrict the run to these bucket names
        now: Run timestamp (default: current UTC time)
        scraper_factory: Builds the scraper for a source id

    Returns:
        The run report

    Raises:
        ConfigurationError: The routing table is inconsistent with the registry
        FeedStoreError: The output directory is not usable
    """
    routing = (routing or default_routing()).select(only_buckets)
    routing.validate_sources(SCRAPER_REGISTRY)
    store = store or FeedStore(settings.output_dir)
    store.check()

    now = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    reference_tz = ZoneInfo(settings.reference_timezone)
    today = now.astimezone(reference_tz).date()
    report = RunReport(started_at=now)

    queue: asyncio.Queue[tuple[BaseScraper, SourceOutcome]] = asyncio.Queue()
    for bucket in routing.buckets:
        for source_id in bucket.source_ids:
            scraper = scraper_factory(source_id, today)
            if scraper is None:
                raise ConfigurationError(f"no adapter registered for: {source_id}")
            outcome = SourceOutcome(source_id=source_id, bucket=bucket.name)
            report.sources.append(outcome)
            queue.put_nowait((scraper, outcome))

    workers = max(1, min(settings.max_concurrent_sources, queue.qsize()))
    logger.info(
        f"Starting feed run: {queue.qsize()} sources, {len(routing.buckets)} feeds, "
        f"{workers} workers"
    )
    results: dict[str, list[Screening]] = {}
    await asyncio.gather(*(_worker(queue, results, reference_tz) for _ in range(workers)))

    by_bucket = aggregate(results, routing)
    failed = report.failed_sources
    documents: dict[str, str] = {}
    for bucket in routing.buckets:
        documents[bucket.name] = builder.build(
            bucket,
            by_bucket[bucket.name],
            store.read(bucket.name),
            now=now,
            failed_sources=failed,
        )

    for name, document in documents.items():
        store.write(name, document)
        report.buckets_written.append(name)

    logger.info(
        f"Feed run complete: {len(report.sources) - len(failed)} sources succeeded, "
        f"{len(failed)} failed, {len(report.buckets_written)} feeds written"
    )
    if failed:
        logger.warning(f"Failed sources: {', '.join(failed)}")
    return report
