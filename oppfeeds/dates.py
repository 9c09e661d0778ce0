"""Date parsing, classification and display helpers.

Bare ``YYYY-MM-DD`` values are always built from their (year, month, day)
components so they never shift with the host's UTC offset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

Instant = Union[date, datetime]

ONGOING = "ongoing"

_BARE_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"\d{1,2}:\d{2}(:\d{2})?")


class FailureReason(str, Enum):
    MISSING = "missing"
    ONGOING = "ongoing"
    INVALID = "invalid"


class DateParseError(ValueError):
    """Raised when a raw date value cannot be turned into an instant.

    The ``reason`` tells the caller whether the value was absent, the
    ``"Ongoing"`` sentinel, or simply malformed.
    """

    def __init__(self, raw: object, reason: FailureReason) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"{reason.value} date: {raw!r}")


class Classification(str, Enum):
    PAST = "past"
    ONGOING = "ongoing"
    FUTURE_TIMED = "future_timed"
    FUTURE_ALL_DAY = "future_all_day"
    UNDATED = "undated"


class SpanKind(str, Enum):
    SAME_DAY = "same_day"
    SAME_MONTH = "same_month"
    SAME_YEAR = "same_year"
    DIFFERENT_YEAR = "different_year"


@dataclass(frozen=True)
class ParsedDate:
    """A successfully parsed date value."""

    value: Instant
    is_all_day: bool


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

def is_ongoing(raw: object) -> bool:
    """Return True for the case-insensitive ``"Ongoing"`` sentinel."""
    return isinstance(raw, str) and raw.strip().lower() == ONGOING


def has_time_component(raw: str) -> bool:
    return bool(_TIME_RE.search(raw))


def parse_date(raw: Optional[str]) -> ParsedDate:
    """Parse a source date value.

    Returns:
        A ``ParsedDate`` holding a ``date`` (all-day) or ``datetime`` (timed).

    Raises:
        DateParseError: if the value is missing, the Ongoing sentinel, or
            not a valid calendar date.
    """
    if raw is None or not isinstance(raw, str) or not raw.strip():
        raise DateParseError(raw, FailureReason.MISSING)
    text = raw.strip()
    if is_ongoing(text):
        raise DateParseError(raw, FailureReason.ONGOING)

    match = _BARE_DATE_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return ParsedDate(date(year, month, day), is_all_day=True)
        except ValueError:
            raise DateParseError(raw, FailureReason.INVALID) from None

    if has_time_component(text):
        try:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise DateParseError(raw, FailureReason.INVALID) from None
        return ParsedDate(value, is_all_day=False)

    raise DateParseError(raw, FailureReason.INVALID)


def parse_timestamp(raw: object) -> Optional[datetime]:
    """Leniently parse a creation-date value into an aware UTC datetime.

    Bare dates become midnight UTC. Returns None on any failure.
    """
    if not isinstance(raw, str):
        return None
    try:
        parsed = parse_date(raw)
    except DateParseError:
        return None
    value = parsed.value
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_date_and_time(day: Instant, time_str: Optional[str]) -> datetime:
    """Attach an ``HH:MM`` wall-clock time to a date.

    Missing or malformed components default to ``00``.
    """
    if isinstance(day, datetime):
        day = day.date()
    parts = (time_str or "").strip().split(":")
    values = []
    for part in (parts + ["0", "0", "0"])[:3]:
        try:
            values.append(int(part))
        except ValueError:
            values.append(0)
    hour, minute, second = values
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second < 60):
        hour = minute = second = 0
    return datetime(day.year, day.month, day.day, hour, minute, second)


def add_duration(value: Instant, *, hours: int = 0, days: int = 0) -> Instant:
    """Shift an instant forward; all-day values only move by whole days."""
    if isinstance(value, datetime):
        return value + timedelta(hours=hours, days=days)
    return value + timedelta(days=days)


# ------------------------------------------------------------------
# Classification
# ------------------------------------------------------------------

def _day_of(value: Instant, now: datetime) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None and now.tzinfo is not None:
            return value.astimezone(now.tzinfo).date()
        return value.date()
    return value


def classify(value: Union[Instant, str, None], now: Optional[datetime] = None) -> Classification:
    """Classify an instant against ``now``, both truncated to midnight.

    An event "today" is never PAST. The Ongoing sentinel is always ONGOING
    and a missing value is UNDATED.
    """
    if value is None:
        return Classification.UNDATED
    if isinstance(value, str):
        if is_ongoing(value):
            return Classification.ONGOING
        value = parse_date(value).value

    now = now or datetime.now()
    today = now.date()
    if _day_of(value, now) < today:
        return Classification.PAST
    if isinstance(value, datetime):
        return Classification.FUTURE_TIMED
    return Classification.FUTURE_ALL_DAY


def is_past(raw: Optional[str], now: Optional[datetime] = None) -> bool:
    """Return True only for parseable dates strictly before today."""
    try:
        return classify(raw, now) is Classification.PAST
    except DateParseError:
        return False


# ------------------------------------------------------------------
# Display
# ------------------------------------------------------------------

def span_kind(start: Instant, end: Instant) -> SpanKind:
    """Compare two instants by (year, month) to pick a display grouping."""
    if start.year != end.year:
        return SpanKind.DIFFERENT_YEAR
    if start.month != end.month:
        return SpanKind.SAME_YEAR
    if start.day != end.day:
        return SpanKind.SAME_MONTH
    return SpanKind.SAME_DAY


def _long(value: Instant) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_date(raw: Optional[str]) -> str:
    """Convert '2025-12-01' to 'December 1, 2025'.

    Unparseable input is returned unchanged.
    """
    if not raw:
        return ""
    try:
        return _long(parse_date(raw).value)
    except DateParseError:
        return raw


def format_date_range(start: Instant, end: Optional[Instant] = None) -> str:
    """Render a start/end pair compactly.

    'December 1 - 3, 2025', 'November 28 - December 2, 2025',
    'December 30, 2025 - January 2, 2026'.
    """
    if end is None:
        return _long(start)
    kind = span_kind(start, end)
    if kind is SpanKind.SAME_DAY:
        return _long(start)
    if kind is SpanKind.SAME_MONTH:
        return f"{start.strftime('%B')} {start.day} - {end.day}, {start.year}"
    if kind is SpanKind.SAME_YEAR:
        return f"{start.strftime('%B')} {start.day} - {end.strftime('%B')} {end.day}, {start.year}"
    return f"{_long(start)} - {_long(end)}"
