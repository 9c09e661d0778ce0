"""Render normalized events as an iCalendar (RFC 5545) document."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable

from bs4 import BeautifulSoup

from oppfeeds.config import STABLE_DTSTAMP, FeedConfig
from oppfeeds.models import NormalizedEvent

logger = logging.getLogger(__name__)

CRLF = "\r\n"

# Content lines longer than this many octets are folded.
FOLD_LIMIT = 75

# VTIMEZONE definitions for the identifiers we know how to describe.
# Anything else is passed through as a bare TZID parameter.
TIMEZONE_DEFINITIONS: dict[str, tuple[str, ...]] = {
    "CET": (
        "BEGIN:VTIMEZONE",
        "TZID:CET",
        "X-LIC-LOCATION:CET",
        "BEGIN:DAYLIGHT",
        "TZOFFSETFROM:+0100",
        "TZOFFSETTO:+0200",
        "TZNAME:CEST",
        "DTSTART:19810329T020000",
        "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU",
        "END:DAYLIGHT",
        "BEGIN:STANDARD",
        "TZOFFSETFROM:+0200",
        "TZOFFSETTO:+0100",
        "TZNAME:CET",
        "DTSTART:19801026T030000",
        "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU",
        "END:STANDARD",
        "END:VTIMEZONE",
    ),
    "UTC": (
        "BEGIN:VTIMEZONE",
        "TZID:UTC",
        "X-LIC-LOCATION:UTC",
        "BEGIN:STANDARD",
        "TZOFFSETFROM:+0000",
        "TZOFFSETTO:+0000",
        "TZNAME:UTC",
        "DTSTART:19700101T000000",
        "END:STANDARD",
        "END:VTIMEZONE",
    ),
}

# Text counts as HTML only with a closing tag or a line break element.
_MARKUP_RE = re.compile(r"</[a-zA-Z][a-zA-Z0-9]*\s*>|<br\s*/?>", re.IGNORECASE)

# Parameter values containing these must be quoted.
_PARAM_UNSAFE = (":", ";", ",")


# ------------------------------------------------------------------
# Text handling
# ------------------------------------------------------------------

def escape_text(text: str) -> str:
    """Escape a TEXT value (RFC 5545 section 3.3.11).

    Backslash goes first so the escapes added afterwards are not doubled.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = FOLD_LIMIT) -> list[str]:
    """Split a content line into chunks of at most ``limit`` octets.

    Continuation chunks start with a single space, which counts towards the
    limit. Multi-byte UTF-8 characters are never split.
    """
    if len(line.encode("utf-8")) <= limit:
        return [line]
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    width = limit
    for char in line:
        octets = len(char.encode("utf-8"))
        if size + octets > width:
            chunks.append("".join(current))
            current, size, width = [], 0, limit - 1
        current.append(char)
        size += octets
    chunks.append("".join(current))
    return [chunks[0]] + [" " + chunk for chunk in chunks[1:]]


def html_to_text(text: str) -> str:
    """Reduce an HTML description to plain text for calendar clients."""
    if not text or not _MARKUP_RE.search(text):
        return text
    soup = BeautifulSoup(text, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(["p", "div", "li"]):
        block.append("\n")
    plain = soup.get_text()
    plain = re.sub(r"[ \t]+\n", "\n", plain)
    return re.sub(r"\n{3,}", "\n\n", plain).strip()


# ------------------------------------------------------------------
# Dates
# ------------------------------------------------------------------

def resolve_tzid(time_zone: str) -> tuple[str, bool]:
    """Return (TZID, recognized) for a source time zone identifier."""
    upper = time_zone.strip().upper()
    if upper in TIMEZONE_DEFINITIONS:
        return upper, True
    return time_zone.strip(), False


def _event_tzid(event: NormalizedEvent) -> str | None:
    """TZID used by a timed, local-time event, or None."""
    if event.is_all_day or not event.is_dated:
        return None
    if not isinstance(event.start, datetime) or event.start.tzinfo is not None:
        return None
    if not event.record.time_zone:
        return None
    return resolve_tzid(event.record.time_zone)[0]


def param_value(value: str) -> str:
    """Quote a parameter value when it contains a delimiter (RFC 5545 section 3.1)."""
    value = value.replace('"', "")
    if any(char in value for char in _PARAM_UNSAFE):
        return f'"{value}"'
    return value


def _utc(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y%m%dT%H%M%SZ")


def date_properties(event: NormalizedEvent) -> list[str]:
    """DTSTART/DTEND in the all-day, local TZID, or UTC form."""
    start, end = event.start, event.end
    if event.is_all_day:
        exclusive_end = end + timedelta(days=1)
        return [
            f"DTSTART;VALUE=DATE:{start.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{exclusive_end.strftime('%Y%m%d')}",
        ]
    tzid = _event_tzid(event)
    if tzid:
        return [
            f"DTSTART;TZID={param_value(tzid)}:{start.strftime('%Y%m%dT%H%M%S')}",
            f"DTEND;TZID={param_value(tzid)}:{end.strftime('%Y%m%dT%H%M%S')}",
        ]
    return [f"DTSTART:{_utc(start)}", f"DTEND:{_utc(end)}"]


# ------------------------------------------------------------------
# Document
# ------------------------------------------------------------------

def _description(event: NormalizedEvent) -> str:
    parts = []
    text = html_to_text(event.record.description)
    if text:
        parts.append(text)
    if event.record.url:
        parts.append(f"More info: {event.record.url}")
    return "\n\n".join(parts)


def render_vevent(event: NormalizedEvent) -> list[str]:
    """Unfolded content lines for one VEVENT."""
    record = event.record
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{STABLE_DTSTAMP}",
    ]
    lines.extend(date_properties(event))
    lines.append(f"SUMMARY:{escape_text(record.title)}")
    description = _description(event)
    if description:
        lines.append(f"DESCRIPTION:{escape_text(description)}")
    if record.location:
        lines.append(f"LOCATION:{escape_text(record.location)}")
    if record.url:
        lines.append(f"URL:{record.url}")
    lines.append("END:VEVENT")
    return lines


def render_ical(events: Iterable[NormalizedEvent], feed: FeedConfig) -> str:
    """Render a complete VCALENDAR.

    Events are emitted in the order given. Ongoing or undated events are
    never written, since they have no DTSTART.
    """
    events = list(events)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{feed.prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(feed.title)}",
    ]

    tzids = {_event_tzid(e) for e in events if e.is_dated}
    for tzid in sorted(t for t in tzids if t in TIMEZONE_DEFINITIONS):
        lines.extend(TIMEZONE_DEFINITIONS[tzid])

    count = 0
    for event in events:
        if not event.is_dated:
            logger.warning("Not writing %r to %s: no start date", event.title, feed.name)
            continue
        lines.extend(render_vevent(event))
        count += 1

    lines.append("END:VCALENDAR")
    logger.debug("Rendered %d event(s) for %s", count, feed.name)

    folded: list[str] = []
    for line in lines:
        folded.extend(fold_line(line))
    return CRLF.join(folded) + CRLF
