"""Unit tests for normalization, selection and ordering."""
from datetime import date, datetime, timedelta

import pytest

from oppfeeds.config import FEEDS
from oppfeeds.dates import Classification, DateParseError
from oppfeeds.models import SourceRecord
from oppfeeds.pipeline import newest_first, normalize, prepare, select


def _feed(name):
    return next(f for f in FEEDS if f.name == name)


class TestNormalize:
    """Test cases for normalize."""

    def test_all_day_defaults_end_to_start(self, now):
        event = normalize(SourceRecord(title="A", start_date="2025-12-01"), now)
        assert event.is_all_day
        assert event.start == date(2025, 12, 1)
        assert event.end == date(2025, 12, 1)
        assert event.classification is Classification.FUTURE_ALL_DAY

    def test_all_day_span(self, now):
        event = normalize(SourceRecord(title="A", start_date="2025-12-10", end_date="2025-12-12"), now)
        assert event.end == date(2025, 12, 12)

    def test_all_day_end_before_start_is_clamped(self, now):
        event = normalize(SourceRecord(title="A", start_date="2025-12-10", end_date="2025-12-01"), now)
        assert event.end == date(2025, 12, 10)

    def test_timed_defaults_to_one_hour(self, now):
        event = normalize(
            SourceRecord(title="A", kind="event", start_date="2025-12-01", start_time="14:00"), now
        )
        assert not event.is_all_day
        assert event.start == datetime(2025, 12, 1, 14, 0)
        assert event.end == datetime(2025, 12, 1, 15, 0)
        assert event.classification is Classification.FUTURE_TIMED

    def test_explicit_end_time(self, now):
        record = SourceRecord(
            title="A", start_date="2025-12-01", start_time="14:00", end_time="16:30"
        )
        assert normalize(record, now).end == datetime(2025, 12, 1, 16, 30)

    def test_end_time_on_end_date(self, now):
        record = SourceRecord(
            title="A", start_date="2025-12-01", end_date="2025-12-02",
            start_time="14:00", end_time="10:00",
        )
        assert normalize(record, now).end == datetime(2025, 12, 2, 10, 0)

    def test_end_not_after_start_falls_back_to_one_hour(self, now):
        record = SourceRecord(
            title="A", start_date="2025-12-01", start_time="14:00", end_time="09:00"
        )
        assert normalize(record, now).end == datetime(2025, 12, 1, 15, 0)

    def test_unparseable_end_date_is_ignored(self, now):
        event = normalize(SourceRecord(title="A", start_date="2025-12-01", end_date="tbd"), now)
        assert event.end == date(2025, 12, 1)

    def test_ongoing(self, now):
        event = normalize(SourceRecord(title="A", start_date="Ongoing"), now)
        assert event.start is None
        assert event.end is None
        assert event.classification is Classification.ONGOING

    def test_undated(self, now):
        assert normalize(SourceRecord(title="A"), now).classification is Classification.UNDATED

    def test_invalid_raises(self, now):
        with pytest.raises(DateParseError):
            normalize(SourceRecord(title="A", start_date="whenever"), now)

    def test_uid_matches_record(self, now):
        record = SourceRecord(title="A", start_date="2025-12-01", start_time="14:00")
        assert normalize(record, now).uid == record.uid


class TestSelect:
    """Test cases for per-feed selection."""

    @pytest.fixture
    def records(self, opportunity_rows):
        return [SourceRecord.from_opportunity(row) for row in opportunity_rows]

    def test_rss_keeps_ongoing_and_past(self, records, now):
        titles = [e.title for e in select(records, _feed("opportunities-rss"), now)]
        assert titles == ["Join the Chapter Survey", "Nominate a Champion", "Past Webinar Feedback"]

    def test_ical_future_only(self, records, now):
        titles = [e.title for e in select(records, _feed("opportunities-ical"), now)]
        assert titles == ["Join the Chapter Survey"]

    def test_archived_and_untitled_never_selected(self, records, now):
        for feed in FEEDS:
            titles = [e.title for e in select(records, feed, now)]
            assert "Old Campaign" not in titles
            assert "" not in titles

    def test_events_ical_drops_ongoing_but_keeps_past(self, now):
        records = [
            SourceRecord(title="Forum", kind="event", start_date="Ongoing"),
            SourceRecord(title="Done", kind="event", start_date="2024-01-01"),
        ]
        titles = [e.title for e in select(records, _feed("events-ical"), now)]
        assert titles == ["Done"]

    def test_skip_reasons_are_logged(self, records, now, caplog):
        with caplog.at_level("INFO", logger="oppfeeds.pipeline"):
            select(records, _feed("opportunities-ical"), now)
        assert "archived" in caplog.text
        assert "invalid date" in caplog.text
        assert "ongoing" in caplog.text
        assert "in the past" in caplog.text


class TestOrdering:
    """Test cases for creation-date ordering and the item cap."""

    def test_newest_first_with_missing_dates_last(self, now):
        records = [
            SourceRecord(title="no-date-1"),
            SourceRecord(title="old", created="2025-01-01"),
            SourceRecord(title="new", created="2025-06-01T10:00:00"),
            SourceRecord(title="no-date-2", created="garbage"),
        ]
        events = [normalize(r, now) for r in records]
        assert [e.title for e in newest_first(events)] == ["new", "old", "no-date-1", "no-date-2"]

    def test_rss_cap_keeps_most_recent(self, now):
        start = date(2024, 1, 1)
        records = [
            SourceRecord(title=f"Item {i}", created=(start + timedelta(days=i)).isoformat())
            for i in range(150)
        ]
        events = prepare(records, _feed("opportunities-rss"), now)
        assert len(events) == 100
        assert events[0].title == "Item 149"
        assert events[-1].title == "Item 50"

    def test_ical_is_uncapped_and_chronological(self, now):
        records = [
            SourceRecord(title=f"Item {i}", start_date=(date(2026, 1, 1) + timedelta(days=149 - i)).isoformat())
            for i in range(150)
        ]
        events = prepare(records, _feed("events-ical"), now)
        assert len(events) == 150
        assert events[0].title == "Item 149"
        assert events[-1].title == "Item 0"
