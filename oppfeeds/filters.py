"""Tag filters and type grouping for record listings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from typing import Iterable, Optional

from oppfeeds.dates import is_past
from oppfeeds.models import SourceRecord


@dataclass(frozen=True)
class RecordFilter:
    """Exact-match tag filters. Empty fields match everything."""

    region: str = ""
    type: str = ""
    category: str = ""
    format: str = ""
    include_past: bool = False

    def matches(self, record: SourceRecord, now: Optional[datetime] = None) -> bool:
        if self.region and record.region != self.region:
            return False
        if self.type and record.type != self.type:
            return False
        if self.category and record.category != self.category:
            return False
        if self.format and record.format != self.format:
            return False
        if not self.include_past and is_past(record.start_date, now):
            return False
        return True


def apply(
    records: Iterable[SourceRecord],
    record_filter: RecordFilter,
    now: Optional[datetime] = None,
) -> list[SourceRecord]:
    """Visible records: titled, not archived, and matching ``record_filter``."""
    return [
        r for r in records
        if r.title and not r.archived and record_filter.matches(r, now)
    ]


def facet_values(records: Iterable[SourceRecord], attr: str) -> list[str]:
    """Sorted distinct non-empty values of ``attr``, for building filter choices."""
    return sorted({getattr(r, attr) for r in records if getattr(r, attr)})


def type_order_key(type_name: str) -> tuple:
    """'Urgent' types first, 'Ongoing' types last, the rest alphabetical."""
    lower = type_name.lower()
    if "urgent" in lower:
        rank = 0
    elif "ongoing" in lower:
        rank = 2
    else:
        rank = 1
    return (rank, lower)


def group_by_type(records: Iterable[SourceRecord]) -> list[tuple[str, list[SourceRecord]]]:
    """Group records under their type, ordered by ``type_order_key``.

    Records without a type are grouped under 'Other'.
    """
    def type_of(record: SourceRecord) -> str:
        return record.type or "Other"

    ordered = sorted(records, key=lambda r: type_order_key(type_of(r)))
    return [(name, list(group)) for name, group in groupby(ordered, key=type_of)]
