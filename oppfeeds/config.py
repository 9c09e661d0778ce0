"""Feed definitions and default paths."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

SITE_URL = "https://opportunities.internetsociety.org"

DEFAULT_ROOT = Path(".")
OPPORTUNITIES_JSON = Path("data/opportunities.json")
EVENTS_JSON = Path("community-events/data/events.json")

# Maximum number of items in an RSS feed.
RSS_ITEM_LIMIT = 100

# DTSTAMP for every VEVENT. Kept fixed so regenerating unchanged data is a no-op.
STABLE_DTSTAMP = "20240101T000000Z"

RSS = "rss"
ICAL = "ical"

OPPORTUNITIES = "opportunities"
EVENTS = "events"


@dataclass(frozen=True)
class FeedConfig:
    """Everything that distinguishes one generated feed from another."""

    name: str
    format: str  # RSS or ICAL
    sources: tuple[str, ...]  # OPPORTUNITIES and/or EVENTS
    output: Path
    title: str
    description: str = ""
    self_path: str = ""
    language: str = "en-us"
    prodid: str = "-//Internet Society//Opportunities//EN"
    item_limit: int | None = None
    future_only: bool = False
    include_ongoing: bool = True
    include_undated: bool = True
    site_url: str = SITE_URL

    @property
    def self_link(self) -> str:
        return f"{self.site_url.rstrip('/')}/{self.self_path.lstrip('/')}"


FEEDS: tuple[FeedConfig, ...] = (
    FeedConfig(
        name="opportunities-rss",
        format=RSS,
        sources=(OPPORTUNITIES,),
        output=Path("data/opportunities.rss"),
        title="Internet Society Opportunities",
        description="Latest opportunities to get involved with Internet Society initiatives",
        self_path="data/opportunities.rss",
        item_limit=RSS_ITEM_LIMIT,
    ),
    FeedConfig(
        name="events-rss",
        format=RSS,
        sources=(EVENTS,),
        output=Path("community-events/data/events.rss"),
        title="Internet Society Community Events",
        description="Upcoming community events from the Internet Society community",
        self_path="community-events/data/events.rss",
        item_limit=RSS_ITEM_LIMIT,
    ),
    FeedConfig(
        name="opportunities-ical",
        format=ICAL,
        sources=(OPPORTUNITIES, EVENTS),
        output=Path("data/opportunities.ics"),
        title="Internet Society Opportunities",
        prodid="-//Internet Society//Opportunities//EN",
        future_only=True,
        include_ongoing=False,
        include_undated=False,
    ),
    FeedConfig(
        name="events-ical",
        format=ICAL,
        sources=(EVENTS,),
        output=Path("community-events/data/events.ics"),
        title="Internet Society Community Events",
        prodid="-//Internet Society//Events//EN",
        include_ongoing=False,
        include_undated=False,
    ),
)


def feeds_for(fmt: str | None = None, site_url: str | None = None) -> list[FeedConfig]:
    """Return the configured feeds, optionally narrowed to one format."""
    feeds = [f for f in FEEDS if fmt is None or f.format == fmt]
    if site_url:
        feeds = [replace(f, site_url=site_url) for f in feeds]
    return feeds
