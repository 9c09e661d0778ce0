"""Opportunity and event data models."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from oppfeeds.dates import Classification, Instant

# Fixed namespace for record UIDs. Changing it changes every UID in every feed.
UID_NAMESPACE = uuid.UUID("a3b7e5dc-cd5a-43b9-a563-71c1f43c3f8f")

OPPORTUNITY = "opportunity"
EVENT = "event"

# Keys holding an opportunity's date, in order of precedence.
OPPORTUNITY_DATE_KEYS = ("Date", "Deadline", "deadline", "date")


def make_uid(
    title: str,
    start_date: Optional[str],
    start_time: Optional[str],
    kind: str = OPPORTUNITY,
) -> str:
    """Create a deterministic UUIDv5 from title + start date + start time + kind.

    Feed readers and calendar clients deduplicate on this value, so it must
    survive regeneration from unchanged input. The kind keeps an opportunity
    and an event with the same title and date apart in the combined calendar.
    """
    key = (
        f"{title.strip()}|{(start_date or '').strip()}|{(start_time or '').strip()}|{kind}"
    )
    return str(uuid.uuid5(UID_NAMESPACE, key))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _string_list(value: Any) -> tuple[str, ...]:
    """Accept either a list or a comma-separated string."""
    if not value:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(_text(v) for v in value if _text(v))
    return tuple(part.strip() for part in str(value).split(",") if part.strip())


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value)


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class SourceRecord:
    """A single opportunity or event as read from the JSON sources."""

    title: str
    kind: str = OPPORTUNITY
    description: str = ""
    start_date: Optional[str] = None  # "2025-12-01", ISO datetime, or "Ongoing"
    end_date: Optional[str] = None
    start_time: Optional[str] = None  # "14:00"
    end_time: Optional[str] = None
    time_zone: Optional[str] = None  # "CET", "UTC", ...
    link: Optional[str] = None
    location: Optional[str] = None
    type: str = ""
    region: str = ""
    category: str = ""
    format: str = ""
    language: str = ""
    organizer: str = ""
    action_text: str = ""
    issues: tuple[str, ...] = field(default_factory=tuple)
    audience: tuple[str, ...] = field(default_factory=tuple)
    archived: bool = False
    created: Optional[str] = None

    @classmethod
    def from_opportunity(cls, data: dict) -> SourceRecord:
        """Build a record from a spreadsheet-style opportunities.json entry."""
        return cls(
            title=_text(_first(data, "Outreach Activity [Title]", "title")),
            kind=OPPORTUNITY,
            description=_text(_first(data, "Opportunity [Description]", "opportunity_description")),
            start_date=_optional(_first(data, *OPPORTUNITY_DATE_KEYS)),
            end_date=_optional(_first(data, "End Date", "end_date")),
            link=_optional(_first(data, "Link", "link")),
            type=_text(_first(data, "Type")),
            region=_text(_first(data, "Region", "region")),
            action_text=_text(_first(data, "Action [CTA]", "action_text")),
            issues=_string_list(_first(data, "Internet Issue", "internet_issue")),
            audience=_string_list(_first(data, "Who Can Get Involved", "who_can_get_involved")),
            archived=_flag(_first(data, "Archived", "archived")),
            created=_optional(_first(data, "Creation date", "creation_date")),
        )

    @classmethod
    def from_event(cls, data: dict) -> SourceRecord:
        """Build a record from a community-events events.json entry."""
        return cls(
            title=_text(data.get("title")),
            kind=EVENT,
            description=_text(data.get("description")),
            start_date=_optional(data.get("startDate")),
            end_date=_optional(data.get("endDate")),
            start_time=_optional(data.get("startTime")),
            end_time=_optional(data.get("endTime")),
            time_zone=_optional(data.get("timeZone")),
            link=_optional(_first(data, "registrationUrl", "link")),
            location=_optional(data.get("location")),
            type=_text(data.get("type")),
            region=_text(data.get("region")),
            category=_text(data.get("category")),
            format=_text(data.get("format")),
            language=_text(data.get("language")),
            organizer=_text(data.get("organizer")),
            archived=_flag(data.get("archived")),
            created=_optional(_first(data, "creationDate", "createdAt", "created")),
        )

    @property
    def uid(self) -> str:
        return make_uid(self.title, self.start_date, self.start_time, self.kind)

    @property
    def url(self) -> Optional[str]:
        """The link, if it is an absolute http(s) URL."""
        if self.link and self.link.lower().startswith("http"):
            return self.link
        return None

    @property
    def is_event(self) -> bool:
        return self.kind == EVENT

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        data = asdict(self)
        data["issues"] = list(self.issues)
        data["audience"] = list(self.audience)
        return data

    def __repr__(self) -> str:
        return f"<SourceRecord {self.kind} '{self.title}' on {self.start_date or '?'}>"


@dataclass(frozen=True)
class NormalizedEvent:
    """A record with its dates resolved, ready for serialization.

    ``start`` and ``end`` are None for ongoing or undated records, which only
    the RSS feeds carry.
    """

    record: SourceRecord
    uid: str
    is_all_day: bool
    start: Optional[Instant]
    end: Optional[Instant]
    classification: Classification

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def is_dated(self) -> bool:
        return self.start is not None

    @property
    def sort_key(self) -> tuple:
        """Key for chronological sorting (undated last)."""
        if self.start is None:
            return (1, "", self.title.lower())
        return (0, self.start.isoformat(), self.title.lower())

    def __repr__(self) -> str:
        return f"<NormalizedEvent '{self.title}' {self.classification.value} {self.start or ''}>"
