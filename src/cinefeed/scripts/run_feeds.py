"""Run the scrapers and rewrite the RSS feeds."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from cinefeed.config import settings
from cinefeed.errors import ConfigurationError, FeedStoreError
from cinefeed.feeds.store import FeedStore
from cinefeed.routing import load_routing
from cinefeed.tasks.feed_job import default_routing, run_feeds
from cinefeed.tasks.report import RunReport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOURCE_FAILED = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape cinema and festival programmes into RSS feeds."
    )
    parser.add_argument(
        "--feed",
        action="append",
        metavar="NAME",
        help="Only rebuild this feed (repeatable, default: all feeds)",
    )
    parser.add_argument(
        "--output-dir",
        metavar="DIR",
        help=f"Directory holding the published feeds (default: {settings.output_dir})",
    )
    parser.add_argument(
        "--routing",
        type=Path,
        metavar="FILE",
        help="JSON routing table (default: built-in feeds)",
    )
    parser.add_argument(
        "--report",
        type=Path,
        metavar="FILE",
        help="Write the run report as JSON to this file",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any source failed",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def log_summary(report: RunReport) -> None:
    for outcome in report.sources:
        if outcome.status == "ok":
            logger.info(
                f"  ok      {outcome.source_id:<22} {outcome.extracted:>4} screenings "
                f"({outcome.dropped_extraction} + {outcome.dropped_normalization} dropped)"
            )
            for reason in outcome.dropped_reasons:
                logger.debug(f"          dropped: {reason}")
        else:
            logger.info(
                f"  FAILED  {outcome.source_id:<22} [{outcome.error_kind}] {outcome.error}"
            )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s %(message)s",
    )

    try:
        routing = load_routing(args.routing) if args.routing else default_routing()
        store = FeedStore(args.output_dir or settings.output_dir)
        report = asyncio.run(run_feeds(routing, store=store, only_buckets=args.feed))
    except (ConfigurationError, FeedStoreError) as e:
        logger.error(f"Aborting run: {e}")
        return EXIT_FATAL

    log_summary(report)
    if args.report:
        args.report.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Wrote run report to {args.report}")

    if args.strict and not report.ok:
        return EXIT_SOURCE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
