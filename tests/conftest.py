"""Shared fixtures: sample data and a temporary dashboard checkout."""
import json
from datetime import datetime
from pathlib import Path

import pytest

from oppfeeds.config import EVENTS_JSON, OPPORTUNITIES_JSON


@pytest.fixture
def now():
    """A fixed 'now' so past/future classification is stable."""
    return datetime(2025, 11, 1, 12, 0)


@pytest.fixture
def opportunity_rows():
    """Spreadsheet-style rows as found in data/opportunities.json."""
    return [
        {
            "Outreach Activity [Title]": "Join the Chapter Survey",
            "Opportunity [Description]": "Tell us <b>what</b> matters",
            "Date": "2025-12-01",
            "Link": "https://example.org/survey?a=1&b=2",
            "Type": "Urgent",
            "Region": "Europe",
            "Internet Issue": "Encryption, Access",
            "Who Can Get Involved": ["Members", "Chapters"],
            "Creation date": "2025-10-01",
        },
        {
            "Outreach Activity [Title]": "Nominate a Champion",
            "Date": "Ongoing",
            "Link": "https://example.org/nominate",
            "Type": "Ongoing",
            "Region": "Global",
            "Creation date": "2025-09-01",
        },
        {
            "Outreach Activity [Title]": "Old Campaign",
            "Date": "2025-12-05",
            "Archived": True,
            "Creation date": "2025-10-05",
        },
        {
            "Outreach Activity [Title]": "",
            "Date": "2025-12-06",
        },
        {
            "Outreach Activity [Title]": "Past Webinar Feedback",
            "Date": "2025-06-01",
            "Link": "https://example.org/past",
            "Type": "Survey",
            "Region": "Africa",
            "Creation date": "2025-05-01",
        },
        {
            "Outreach Activity [Title]": "Broken Date",
            "Date": "sometime soon",
            "Creation date": "2025-10-10",
        },
    ]


@pytest.fixture
def event_rows():
    """Community event records as found in community-events/data/events.json."""
    return [
        {
            "title": "Community Meetup",
            "description": "Meet; greet, talk",
            "startDate": "2025-12-01",
            "startTime": "14:00",
            "timeZone": "CET",
            "registrationUrl": "https://example.org/meetup",
            "region": "Europe",
            "type": "Meetup",
            "format": "In person",
            "location": "Berlin, Germany",
        },
        {
            "title": "Policy Workshop",
            "description": "Three days of policy work",
            "startDate": "2025-12-10",
            "endDate": "2025-12-12",
            "registrationUrl": "https://example.org/workshop",
            "region": "Asia-Pacific",
            "type": "Workshop",
            "format": "Online",
        },
        {
            "title": "Always-on Forum",
            "startDate": "Ongoing",
            "type": "Forum",
        },
    ]


@pytest.fixture
def write_json():
    """Return a helper that writes JSON to a path, creating parents."""
    def _write(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def site(tmp_path, write_json, opportunity_rows, event_rows):
    """A dashboard checkout with both data files in place."""
    write_json(tmp_path / OPPORTUNITIES_JSON, opportunity_rows)
    write_json(tmp_path / EVENTS_JSON, event_rows)
    return tmp_path
