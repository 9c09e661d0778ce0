"""Read-only access to the dashboard's JSON data files."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from oppfeeds.config import DEFAULT_ROOT, EVENTS, EVENTS_JSON, OPPORTUNITIES, OPPORTUNITIES_JSON
from oppfeeds.models import SourceRecord

logger = logging.getLogger(__name__)


class DataFileError(Exception):
    """A source file is missing, unreadable, or not a JSON array."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class SourceStore:
    """Loads opportunity and event records from disk.

    File layout (relative to ``root``):
        data/opportunities.json             - spreadsheet-style opportunity rows
        community-events/data/events.json   - community event records

    Nothing is cached; every call reads the file again.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = root or DEFAULT_ROOT
        self.opportunities_path = self.root / OPPORTUNITIES_JSON
        self.events_path = self.root / EVENTS_JSON

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def path_for(self, source: str) -> Path:
        if source == OPPORTUNITIES:
            return self.opportunities_path
        if source == EVENTS:
            return self.events_path
        raise ValueError(f"Unknown source: {source!r}")

    def load_raw(self, source: str) -> list[dict]:
        """Load the raw JSON array for ``source``.

        Raises:
            DataFileError: if the file is missing, malformed, or not an array.
        """
        path = self.path_for(source)
        if not path.exists():
            raise DataFileError(path, "file not found")
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise DataFileError(path, f"invalid JSON ({exc})") from exc
        except UnicodeDecodeError as exc:
            raise DataFileError(path, f"not valid UTF-8 ({exc})") from exc
        except OSError as exc:
            raise DataFileError(path, f"unreadable ({exc})") from exc
        if not isinstance(raw, list):
            raise DataFileError(path, "expected a JSON array")
        logger.debug("Read %d entries from %s", len(raw), path)
        return raw

    def load(self, source: str) -> list[SourceRecord]:
        """Load ``source`` as SourceRecords. Non-object entries are skipped."""
        build = SourceRecord.from_opportunity if source == OPPORTUNITIES else SourceRecord.from_event
        records = []
        for index, item in enumerate(self.load_raw(source)):
            if not isinstance(item, dict):
                logger.warning("Skipping %s entry %d: not an object", source, index)
                continue
            records.append(build(item))
        return records

    def load_opportunities(self) -> list[SourceRecord]:
        return self.load(OPPORTUNITIES)

    def load_events(self) -> list[SourceRecord]:
        return self.load(EVENTS)

    def load_sources(self, sources: tuple[str, ...]) -> list[SourceRecord]:
        """Load and concatenate several sources, in the given order."""
        records: list[SourceRecord] = []
        for source in sources:
            records.extend(self.load(source))
        return records

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def modified_at(self, sources: tuple[str, ...]) -> datetime:
        """Latest modification time across ``sources``, as aware UTC."""
        stamps = [self.path_for(s).stat().st_mtime for s in sources if self.path_for(s).exists()]
        if not stamps:
            return datetime(1970, 1, 1, tzinfo=timezone.utc)
        return datetime.fromtimestamp(int(max(stamps)), tz=timezone.utc)
