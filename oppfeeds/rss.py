"""Render normalized records as an RSS 2.0 feed."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Iterable, Optional

from oppfeeds.config import FeedConfig
from oppfeeds.dates import format_date_range, parse_timestamp
from oppfeeds.models import NormalizedEvent

logger = logging.getLogger(__name__)

CRLF = "\r\n"
ATOM_NS = "http://www.w3.org/2005/Atom"
FINGERPRINT_MARKER = "DATA_FINGERPRINT"


def escape_xml(text: str) -> str:
    """Escape text for element content or a double-quoted attribute."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def cdata(text: str) -> str:
    """Wrap text in CDATA, splitting any ``]]>`` it contains."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def rfc822(value: datetime) -> str:
    """Format as an RFC 822 date in GMT, e.g. 'Mon, 01 Dec 2025 00:00:00 GMT'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


# ------------------------------------------------------------------
# Item description
# ------------------------------------------------------------------

def _when(event: NormalizedEvent) -> str:
    record = event.record
    if event.start is None:
        return record.start_date or ""
    text = format_date_range(event.start, event.end)
    if not event.is_all_day and isinstance(event.start, datetime):
        text += f" {event.start.strftime('%H:%M')}"
        if record.time_zone:
            text += f" {record.time_zone}"
    return text


def item_description(event: NormalizedEvent) -> str:
    """HTML fragment for an item: the description plus labelled details."""
    record = event.record
    details: list[tuple[str, str]] = []
    if record.is_event:
        details.append(("When", _when(event)))
        details.append(("Format", record.format))
        details.append(("Organizer", record.organizer))
        details.append(("Language", record.language))
    else:
        if record.start_date:
            details.append(("Deadline", _when(event)))
        details.append(("Type", record.type))
    details.append(("Region", record.region))
    details.append(("Internet Issue", ", ".join(record.issues)))
    details.append(("Who can get involved", ", ".join(record.audience)))

    parts = [f"<p>{record.description or 'No description available.'}</p>"]
    parts.extend(f"<p><strong>{label}:</strong> {value}</p>" for label, value in details if value)
    return "\n".join(parts)


def render_item(event: NormalizedEvent) -> list[str]:
    record = event.record
    lines = ["    <item>", f"      <title>{cdata(record.title)}</title>"]
    if record.url:
        lines.append(f"      <link>{escape_xml(record.url)}</link>")
    lines.append(f'      <guid isPermaLink="false">{event.uid}</guid>')
    created = parse_timestamp(record.created)
    if created is not None:
        lines.append(f"      <pubDate>{rfc822(created)}</pubDate>")
    lines.append(f"      <description>{cdata(item_description(event))}</description>")
    lines.append("    </item>")
    return lines


# ------------------------------------------------------------------
# Document
# ------------------------------------------------------------------

def render_rss(
    events: Iterable[NormalizedEvent],
    feed: FeedConfig,
    build_date: datetime,
    fingerprint: Optional[str] = None,
) -> str:
    """Render a complete RSS document.

    Items keep the order given. ``build_date`` becomes ``lastBuildDate``; pass
    something derived from the source data rather than the current time.
    """
    lines = ['<?xml version="1.0" encoding="UTF-8"?>']
    if fingerprint:
        lines.append(f"<!-- {FINGERPRINT_MARKER}:{fingerprint} -->")
    lines.extend([
        f'<rss version="2.0" xmlns:atom="{ATOM_NS}">',
        "  <channel>",
        f"    <title>{escape_xml(feed.title)}</title>",
        f"    <link>{escape_xml(feed.site_url)}</link>",
        f"    <description>{escape_xml(feed.description)}</description>",
        f"    <language>{feed.language}</language>",
        f"    <lastBuildDate>{rfc822(build_date)}</lastBuildDate>",
        f'    <atom:link href="{escape_xml(feed.self_link)}" rel="self" type="application/rss+xml" />',
    ])

    count = 0
    for event in events:
        lines.extend(render_item(event))
        count += 1

    lines.extend(["  </channel>", "</rss>"])
    logger.debug("Rendered %d item(s) for %s", count, feed.name)
    document = "\n".join(lines) + "\n"
    # Descriptions may carry their own line breaks; normalize everything to CRLF.
    return document.replace("\r\n", "\n").replace("\n", CRLF)
