"""Build feed documents and write them only when their content changed."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from oppfeeds.config import ICAL, FeedConfig
from oppfeeds.ical import render_ical
from oppfeeds.models import NormalizedEvent
from oppfeeds.pipeline import prepare
from oppfeeds.rss import FINGERPRINT_MARKER, render_rss
from oppfeeds.store import SourceStore

logger = logging.getLogger(__name__)

_FINGERPRINT_RE = re.compile(rf"<!-- {FINGERPRINT_MARKER}:([a-f0-9]+) -->")


@dataclass(frozen=True)
class PublishResult:
    """Outcome of publishing one feed."""

    feed: FeedConfig
    path: Path
    items: int
    written: bool


# ------------------------------------------------------------------
# Fingerprints
# ------------------------------------------------------------------

def fingerprint(payload: object) -> str:
    """md5 hex digest of the canonical JSON encoding of ``payload``."""
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


def content_hash(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def embedded_fingerprint(text: str) -> Optional[str]:
    """Return the DATA_FINGERPRINT recorded in a previously written feed."""
    match = _FINGERPRINT_RE.search(text)
    return match.group(1) if match else None


def projection(events: list[NormalizedEvent], feed: FeedConfig) -> dict:
    """The inputs that determine a feed's content, minus the build date."""
    return {
        "feed": {
            "title": feed.title,
            "description": feed.description,
            "link": feed.site_url,
            "self": feed.self_link,
            "language": feed.language,
        },
        "items": [event.record.to_dict() for event in events],
    }


# ------------------------------------------------------------------
# Writing
# ------------------------------------------------------------------

def _read_existing(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_if_changed(path: Path, content: str, data_fingerprint: Optional[str] = None) -> bool:
    """Write ``content`` to ``path`` unless nothing meaningful changed.

    With ``data_fingerprint``, the fingerprint embedded in the existing file
    decides; otherwise the whole content is compared by hash.

    Returns:
        True if the file was written.
    """
    existing = _read_existing(path)
    if existing is not None:
        if data_fingerprint is not None:
            unchanged = embedded_fingerprint(existing) == data_fingerprint
        else:
            unchanged = content_hash(existing) == content_hash(content)
        if unchanged:
            logger.info("No changes to %s, skipping write", path)
            return False

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    logger.info("Wrote %s", path)
    return True


# ------------------------------------------------------------------
# Feeds
# ------------------------------------------------------------------

def build_feed(
    feed: FeedConfig,
    store: SourceStore,
    now: Optional[datetime] = None,
) -> tuple[str, Optional[str], int]:
    """Build one feed document in memory.

    Returns:
        (content, data_fingerprint, item_count). The fingerprint is only set
        for RSS feeds, which embed it.

    Raises:
        DataFileError: if a source file cannot be read.
    """
    records = store.load_sources(feed.sources)
    events = prepare(records, feed, now)
    if feed.format == ICAL:
        return render_ical(events, feed), None, len(events)
    data_fingerprint = fingerprint(projection(events, feed))
    build_date = store.modified_at(feed.sources)
    return render_rss(events, feed, build_date, data_fingerprint), data_fingerprint, len(events)


def publish(
    feeds: list[FeedConfig],
    store: SourceStore,
    now: Optional[datetime] = None,
) -> list[PublishResult]:
    """Publish several feeds.

    Every document is built before anything is written, so a read error
    leaves all existing outputs untouched.
    """
    built = [(feed, *build_feed(feed, store, now)) for feed in feeds]
    results = []
    for feed, content, data_fingerprint, count in built:
        path = store.root / feed.output
        written = write_if_changed(path, content, data_fingerprint)
        logger.info("[%s] %d item(s)%s", feed.name, count, "" if written else " (unchanged)")
        results.append(PublishResult(feed=feed, path=path, items=count, written=written))
    return results
