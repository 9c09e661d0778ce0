"""Normalize source records and select the ones each feed should carry."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from oppfeeds.config import ICAL, FeedConfig
from oppfeeds.dates import (
    Classification,
    DateParseError,
    FailureReason,
    Instant,
    ParsedDate,
    add_duration,
    classify,
    combine_date_and_time,
    parse_date,
    parse_timestamp,
)
from oppfeeds.models import NormalizedEvent, SourceRecord

logger = logging.getLogger(__name__)

# Timed events without an explicit end last this long.
DEFAULT_DURATION_HOURS = 1


# ------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------

def _resolve_end(record: SourceRecord, start: Instant, is_all_day: bool) -> Instant:
    """Work out the end bound. All-day ends are the inclusive last day."""
    end_parsed: Optional[ParsedDate] = None
    if record.end_date:
        try:
            end_parsed = parse_date(record.end_date)
        except DateParseError as exc:
            logger.debug("Ignoring end date of %r: %s", record.title, exc)

    if is_all_day:
        if end_parsed is None:
            return start
        end = end_parsed.value
        if isinstance(end, datetime):
            end = end.date()
        return end if end >= start else start

    if end_parsed is not None and not end_parsed.is_all_day:
        end = end_parsed.value
    elif record.end_time:
        end = combine_date_and_time(end_parsed.value if end_parsed else start, record.end_time)
    elif end_parsed is not None:
        end = combine_date_and_time(end_parsed.value, start.strftime("%H:%M:%S"))
    else:
        return add_duration(start, hours=DEFAULT_DURATION_HOURS)

    if (end.tzinfo is None) != (start.tzinfo is None):
        end = end.replace(tzinfo=start.tzinfo)
    if end <= start:
        return add_duration(start, hours=DEFAULT_DURATION_HOURS)
    return end


def normalize(record: SourceRecord, now: Optional[datetime] = None) -> NormalizedEvent:
    """Resolve a record's dates.

    Ongoing and undated records come back with ``start = None``.

    Raises:
        DateParseError: with reason INVALID when the start date is malformed.
    """
    try:
        parsed = parse_date(record.start_date)
    except DateParseError as exc:
        if exc.reason is FailureReason.INVALID:
            raise
        classification = (
            Classification.ONGOING if exc.reason is FailureReason.ONGOING else Classification.UNDATED
        )
        return NormalizedEvent(
            record=record,
            uid=record.uid,
            is_all_day=False,
            start=None,
            end=None,
            classification=classification,
        )

    start = parsed.value
    is_all_day = parsed.is_all_day
    if is_all_day and record.start_time:
        start = combine_date_and_time(start, record.start_time)
        is_all_day = False

    return NormalizedEvent(
        record=record,
        uid=record.uid,
        is_all_day=is_all_day,
        start=start,
        end=_resolve_end(record, start, is_all_day),
        classification=classify(start, now),
    )


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------

def select(
    records: Iterable[SourceRecord],
    feed: FeedConfig,
    now: Optional[datetime] = None,
) -> list[NormalizedEvent]:
    """Drop records a feed must not carry, logging why, and normalize the rest.

    Per-record problems never abort the run.
    """
    selected: list[NormalizedEvent] = []
    for record in records:
        if not record.title:
            logger.info("[%s] Skipping untitled %s", feed.name, record.kind)
            continue
        if record.archived:
            logger.info("[%s] Skipping %r: archived", feed.name, record.title)
            continue
        try:
            event = normalize(record, now)
        except DateParseError:
            logger.warning(
                "[%s] Skipping %r: invalid date %r", feed.name, record.title, record.start_date
            )
            continue

        if event.classification is Classification.ONGOING and not feed.include_ongoing:
            logger.info("[%s] Skipping %r: ongoing", feed.name, record.title)
            continue
        if event.classification is Classification.UNDATED and not feed.include_undated:
            logger.info("[%s] Skipping %r: no date", feed.name, record.title)
            continue
        if event.classification is Classification.PAST and feed.future_only:
            logger.info("[%s] Skipping %r: date %s is in the past", feed.name, record.title, record.start_date)
            continue
        selected.append(event)
    return selected


# ------------------------------------------------------------------
# Ordering
# ------------------------------------------------------------------

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _creation_key(event: NormalizedEvent) -> tuple:
    created = parse_timestamp(event.record.created)
    return (created is not None, created or _EPOCH)


def newest_first(events: list[NormalizedEvent]) -> list[NormalizedEvent]:
    """Sort by creation date, newest first; records without one keep input order at the end."""
    return sorted(events, key=_creation_key, reverse=True)


def prepare(
    records: Iterable[SourceRecord],
    feed: FeedConfig,
    now: Optional[datetime] = None,
) -> list[NormalizedEvent]:
    """Select, order and cap the items for one feed."""
    events = select(records, feed, now)
    if feed.format == ICAL:
        events = sorted(events, key=lambda e: e.sort_key)
    else:
        events = newest_first(events)
    if feed.item_limit is not None and len(events) > feed.item_limit:
        logger.info("[%s] Capping %d item(s) at %d", feed.name, len(events), feed.item_limit)
        events = events[: feed.item_limit]
    return events
