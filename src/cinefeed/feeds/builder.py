"""RSS 2.0 feed builder with stable item identity across runs.

Each run recomputes every screening, but a feed reader must not see an
unchanged screening as new. Items are keyed by a guid derived from the
screening's detail URL and start time; the first-seen ``pubDate`` of a guid
is read back from the previously published document and carried forward.
"""

import hashlib
import html
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from zoneinfo import ZoneInfo

import feedparser

from cinefeed.config import settings
from cinefeed.errors import BuildError
from cinefeed.routing import FeedBucket
from cinefeed.scrapers.models import Screening
from cinefeed.utils.dates import format_showtime

logger = logging.getLogger(__name__)

GUID_PREFIX = "cinefeed-"
CF_NAMESPACE = "https://github.com/cinefeed/cinefeed/ns/1.0"

LABELS = {
    "it": {
        "venue": "Cinema",
        "showtime": "Orario",
        "cast": "Cast",
        "running_time": "Durata",
        "release_date": "Uscita",
    },
    "en": {
        "venue": "Venue",
        "showtime": "Showtime",
        "cast": "Cast",
        "running_time": "Running time",
        "release_date": "Released",
    },
}


@dataclass(frozen=True)
class FeedItem:
    """One rendered RSS item, or one item read back from a previous document."""

    guid: str
    pub_date: datetime  # First-seen time (aware)
    title: str
    link: str
    description: str  # HTML
    category: str | None = None
    source_id: str = ""
    start_time: datetime | None = None
    venue_name: str = ""
    film_title: str = ""


def _to_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


def _fmt_rfc2822(dt: datetime) -> str:
    return format_datetime(_to_utc(dt).replace(microsecond=0), usegmt=True)


def _cdata(s: str) -> str:
    # Split the section if the text itself contains the terminator
    s = s.replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{s}]]>"


def compute_guid(detail_url: str, start_time: datetime) -> str:
    """
    Deterministic item id for a screening.

    Depends only on the detail URL and the start instant (in UTC), never on
    run time or insertion order.
    """
    key = f"{detail_url}|{_to_utc(start_time).isoformat()}"
    return GUID_PREFIX + hashlib.sha1(key.encode("utf-8")).hexdigest()


def item_sort_key(item: FeedItem) -> tuple:
    start = _to_utc(item.start_time) if item.start_time else datetime.max.replace(tzinfo=timezone.utc)
    return (start, item.venue_name, item.film_title, item.link, item.guid)


def _describe(screening: Screening, showtime: str, language: str) -> str:
    labels = LABELS.get(language, LABELS["it"])
    parts: list[str] = []
    if screening.poster_url:
        parts.append(
            f'<p><img src="{html.escape(screening.poster_url)}" '
            f'alt="{html.escape(screening.film_title)}"/></p>'
        )
    parts.append(f"<p><strong>{labels['showtime']}:</strong> {html.escape(showtime)}</p>")
    parts.append(f"<p><strong>{labels['venue']}:</strong> {html.escape(screening.venue_name)}</p>")
    if screening.cast:
        parts.append(
            f"<p><strong>{labels['cast']}:</strong> {html.escape(', '.join(screening.cast))}</p>"
        )
    if screening.running_time:
        parts.append(
            f"<p><strong>{labels['running_time']}:</strong> {screening.running_time} min</p>"
        )
    if screening.release_date:
        parts.append(
            f"<p><strong>{labels['release_date']}:</strong> {html.escape(screening.release_date)}</p>"
        )
    if screening.synopsis:
        for paragraph in screening.synopsis.split("\n\n"):
            parts.append(f"<p>{html.escape(paragraph)}</p>")
    return "".join(parts)


def make_item(bucket: FeedBucket, screening: Screening, now: datetime) -> FeedItem:
    """Render a screening as a new item first seen at ``now``."""
    showtime = format_showtime(screening.start_time.astimezone(bucket.tz), bucket.language)
    return FeedItem(
        guid=compute_guid(screening.detail_url, screening.start_time),
        pub_date=now,
        title=f"{screening.film_title} - {showtime}",
        link=screening.detail_url,
        description=_describe(screening, showtime, bucket.language),
        category=screening.category,
        source_id=screening.source_id,
        start_time=_to_utc(screening.start_time),
        venue_name=screening.venue_name,
        film_title=screening.film_title,
    )


def _parse_entry(entry) -> FeedItem | None:
    guid = entry.get("id")
    published = entry.get("published")
    if not guid or not published:
        return None
    try:
        pub_date = parsedate_to_datetime(published)
    except (TypeError, ValueError):
        logger.warning(f"Previous item {guid}: unparseable pubDate {published!r}")
        return None
    if pub_date.tzinfo is None:
        pub_date = pub_date.replace(tzinfo=timezone.utc)

    start_time = None
    if entry.get("cf_start"):
        try:
            start_time = datetime.fromisoformat(entry["cf_start"])
        except ValueError:
            logger.warning(f"Previous item {guid}: unparseable start {entry['cf_start']!r}")
        else:
            if start_time.tzinfo is None:
                start_time = start_time.replace(tzinfo=timezone.utc)

    tags = entry.get("tags") or []
    return FeedItem(
        guid=guid,
        pub_date=pub_date,
        title=entry.get("title", ""),
        link=entry.get("link", ""),
        description=entry.get("summary", ""),
        category=tags[0].get("term") if tags else None,
        source_id=entry.get("cf_source", ""),
        start_time=start_time,
        venue_name=entry.get("cf_venue", ""),
        film_title=entry.get("cf_film", ""),
    )


def parse_previous(document: str) -> list[FeedItem]:
    """
    Parse a previously published document.

    Raises:
        BuildError: The document is not a readable feed
    """
    parsed = feedparser.parse(
        document.encode("utf-8"),
        sanitize_html=False,
        resolve_relative_uris=False,
    )
    if parsed.get("bozo") and not isinstance(
        parsed.get("bozo_exception"), feedparser.CharacterEncodingOverride
    ):
        raise BuildError(f"malformed feed: {parsed.get('bozo_exception')}")
    if not parsed.get("version"):
        raise BuildError("not an RSS/Atom document")

    items: list[FeedItem] = []
    for entry in parsed.entries:
        item = _parse_entry(entry)
        if item is not None:
            items.append(item)
    return items


def read_previous(document: str | None) -> list[FeedItem]:
    """
    Items of the previously published document, or [] if there is none.

    An unreadable document is logged and treated as absent, so every
    current item becomes new instead of the run failing.
    """
    if not document or not document.strip():
        return []
    try:
        return parse_previous(document)
    except BuildError as e:
        logger.warning(f"Ignoring previous feed, all items treated as new: {e}")
        return []


def merge_items(
    current: Sequence[FeedItem],
    previous: Sequence[FeedItem],
    now: datetime,
) -> list[FeedItem]:
    """
    Merge freshly computed items with the previous document's items by guid.

    Known guids keep their previous ``pub_date``; new guids get ``now``;
    guids only present in ``previous`` are dropped. When ``current`` holds
    a guid twice the first one wins.
    """
    first_seen = {item.guid: item.pub_date for item in previous}
    merged: list[FeedItem] = []
    seen: set[str] = set()
    for item in current:
        if item.guid in seen:
            logger.debug(f"Duplicate guid {item.guid} for '{item.title}', keeping first")
            continue
        seen.add(item.guid)
        merged.append(replace(item, pub_date=first_seen.get(item.guid, now)))
    return merged


def carry_forward(
    previous: Iterable[FeedItem],
    source_ids: Iterable[str],
    now: datetime,
    tz: ZoneInfo | None = None,
) -> list[FeedItem]:
    """
    Previous items of sources that failed this run, kept unchanged.

    Items whose screening started before the run's day (in ``tz``, default
    the reference timezone) are left out so stale data does not grow
    without bound while a source stays broken.
    """
    failed = set(source_ids)
    if not failed:
        return []
    tz = tz or ZoneInfo(settings.reference_timezone)
    day_start = now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        item
        for item in previous
        if item.source_id in failed and item.start_time is not None and item.start_time >= day_start
    ]


def _emit_item(item: FeedItem) -> str:
    parts = ["<item>"]
    parts.append(f"<title>{html.escape(item.title)}</title>")
    parts.append(f"<link>{html.escape(item.link)}</link>")
    if item.category:
        parts.append(f"<category>{html.escape(item.category)}</category>")
    parts.append(f'<guid isPermaLink="false">{html.escape(item.guid)}</guid>')
    parts.append(f"<pubDate>{_fmt_rfc2822(item.pub_date)}</pubDate>")
    parts.append(f"<description>{_cdata(item.description)}</description>")
    if item.source_id:
        parts.append(f"<cf:source>{html.escape(item.source_id)}</cf:source>")
    if item.start_time:
        parts.append(f"<cf:start>{_to_utc(item.start_time).isoformat()}</cf:start>")
    if item.venue_name:
        parts.append(f"<cf:venue>{html.escape(item.venue_name)}</cf:venue>")
    if item.film_title:
        parts.append(f"<cf:film>{html.escape(item.film_title)}</cf:film>")
    parts.append("</item>")
    return "\n".join(parts)


def render(bucket: FeedBucket, items: Sequence[FeedItem]) -> str:
    """
    Serialize a bucket's items as an RSS 2.0 document.

    ``lastBuildDate`` is the newest item ``pubDate`` rather than the run
    time, and is omitted for an empty feed, so an unchanged run produces a
    byte-identical document.
    """
    out = ['<?xml version="1.0" encoding="UTF-8"?>']
    out.append(f'<rss version="2.0" xmlns:cf="{CF_NAMESPACE}">')
    out.append("<channel>")
    out.append(f"<title>{html.escape(bucket.title)}</title>")
    out.append(f"<link>{html.escape(bucket.link)}</link>")
    out.append(f"<description>{html.escape(bucket.description)}</description>")
    out.append(f"<language>{bucket.language}</language>")
    if items:
        newest = max(_to_utc(item.pub_date) for item in items)
        out.append(f"<lastBuildDate>{_fmt_rfc2822(newest)}</lastBuildDate>")
    out.extend(_emit_item(item) for item in items)
    out.append("</channel>")
    out.append("</rss>")
    return "\n".join(out) + "\n"


def build(
    bucket: FeedBucket,
    screenings: Sequence[Screening],
    previous_document: str | None,
    *,
    now: datetime,
    failed_sources: Iterable[str] = (),
) -> str:
    """
    Build a bucket's feed document.

    Args:
        bucket: The feed bucket
        screenings: The bucket's screenings, in feed order
        previous_document: The last published document for this bucket, if any
        now: Run timestamp, used as first-seen time of new items
        failed_sources: Sources of this run that failed; their previous items
            are carried forward

    Returns:
        The RSS 2.0 document
    """
    now = now.replace(microsecond=0)
    previous = read_previous(previous_document)
    current = [make_item(bucket, screening, now) for screening in screenings]
    items = merge_items(current, previous, now)

    bucket_failed = [s for s in failed_sources if s in bucket.source_ids]
    known = {item.guid for item in items}
    carried = [item for item in carry_forward(previous, bucket_failed, now) if item.guid not in known]
    if carried:
        logger.info(f"{bucket.name}: carried forward {len(carried)} items of failed sources")

    items = sorted(items + carried, key=item_sort_key)
    new = sum(1 for item in items if item.pub_date == now)
    logger.info(f"{bucket.name}: {len(items)} items ({new} new)")
    return render(bucket, items)
