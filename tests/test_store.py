"""Unit tests for SourceStore."""
import os
from datetime import datetime, timezone

import pytest

from oppfeeds.config import EVENTS, EVENTS_JSON, OPPORTUNITIES, OPPORTUNITIES_JSON
from oppfeeds.store import DataFileError, SourceStore


class TestLoad:
    """Test cases for loading source files."""

    def test_load_both_sources(self, site):
        store = SourceStore(root=site)
        assert len(store.load_opportunities()) == 6
        assert [r.title for r in store.load_events()] == [
            "Community Meetup", "Policy Workshop", "Always-on Forum",
        ]

    def test_load_sources_concatenates_in_order(self, site):
        records = SourceStore(root=site).load_sources((OPPORTUNITIES, EVENTS))
        assert records[0].kind == "opportunity"
        assert records[-1].kind == "event"
        assert len(records) == 9

    def test_non_object_entries_are_skipped(self, tmp_path, write_json):
        write_json(tmp_path / EVENTS_JSON, [{"title": "ok"}, "junk", 3])
        assert [r.title for r in SourceStore(root=tmp_path).load_events()] == ["ok"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataFileError, match="file not found"):
            SourceStore(root=tmp_path).load_events()

    def test_malformed_json(self, tmp_path):
        path = tmp_path / OPPORTUNITIES_JSON
        path.parent.mkdir(parents=True)
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(DataFileError, match="invalid JSON") as excinfo:
            SourceStore(root=tmp_path).load_opportunities()
        assert excinfo.value.path == path

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / OPPORTUNITIES_JSON
        path.parent.mkdir(parents=True)
        path.write_bytes(b'[{"Outreach Activity [Title]": "\xff\xfe bad"}]')
        with pytest.raises(DataFileError, match="not valid UTF-8"):
            SourceStore(root=tmp_path).load_opportunities()

    def test_not_an_array(self, tmp_path, write_json):
        write_json(tmp_path / EVENTS_JSON, {"events": []})
        with pytest.raises(DataFileError, match="expected a JSON array"):
            SourceStore(root=tmp_path).load_raw(EVENTS)

    def test_unknown_source(self, tmp_path):
        with pytest.raises(ValueError):
            SourceStore(root=tmp_path).path_for("news")


class TestModifiedAt:
    """Test cases for modified_at."""

    def test_latest_mtime_across_sources(self, site):
        os.utime(site / OPPORTUNITIES_JSON, (1_700_000_000, 1_700_000_000))
        os.utime(site / EVENTS_JSON, (1_600_000_000, 1_600_000_000))
        store = SourceStore(root=site)
        expected = datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert store.modified_at((OPPORTUNITIES, EVENTS)) == expected
        assert store.modified_at((EVENTS,)) == datetime.fromtimestamp(1_600_000_000, tz=timezone.utc)

    def test_no_files_gives_epoch(self, tmp_path):
        stamp = SourceStore(root=tmp_path).modified_at((EVENTS,))
        assert stamp == datetime(1970, 1, 1, tzinfo=timezone.utc)
