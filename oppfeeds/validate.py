"""Shape checks for the JSON data files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from oppfeeds.dates import is_ongoing
from oppfeeds.models import OPPORTUNITY_DATE_KEYS

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass
class ValidationResult:
    """Errors found in one data file."""

    name: str
    count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def is_valid_date(value: Any, allow_ongoing: bool = True) -> bool:
    """Null dates are allowed; otherwise require YYYY-MM-DD or "Ongoing"."""
    if not value:
        return True
    if not isinstance(value, str):
        return False
    if allow_ongoing and is_ongoing(value):
        return True
    match = _DATE_RE.match(value)
    if not match:
        return False
    try:
        date(*(int(part) for part in match.groups()))
    except ValueError:
        return False
    return True


def _check_link(errors: list[str], label: str, key: str, value: Any) -> None:
    if isinstance(value, str) and value.strip() and not value.startswith("http"):
        errors.append(f"{label}: {key} must start with http:// or https://")


def validate_opportunities(data: Any) -> ValidationResult:
    """Validate the contents of opportunities.json."""
    result = ValidationResult("opportunities.json")
    if not isinstance(data, list):
        result.errors.append("Data must be an array")
        return result
    result.count = len(data)

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            result.errors.append(f"Item {index}: not an object")
            continue
        title = item.get("Outreach Activity [Title]") or item.get("title")
        label = f'Item {index} ("{title}")' if title else f"Item {index}"
        if not isinstance(title, str) or not title.strip():
            result.errors.append(f"Item {index}: Missing or empty title")

        value = next((item[k] for k in OPPORTUNITY_DATE_KEYS if item.get(k) not in (None, "")), None)
        if value and not is_valid_date(value):
            result.errors.append(
                f'{label}: Invalid date format "{value}". Expected YYYY-MM-DD or "Ongoing"'
            )
        _check_link(result.errors, label, "Link", item.get("Link") or item.get("link"))
    return result


def validate_events(data: Any) -> ValidationResult:
    """Validate the contents of events.json."""
    result = ValidationResult("events.json")
    if not isinstance(data, list):
        result.errors.append("Data must be an array")
        return result
    result.count = len(data)

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            result.errors.append(f"Item {index}: not an object")
            continue
        title = item.get("title")
        label = f'Item {index} ("{title}")' if title else f"Item {index}"
        if not isinstance(title, str) or not title.strip():
            result.errors.append(f"Item {index}: Missing or empty title")

        for key in ("startDate", "endDate"):
            value = item.get(key)
            if value and not is_valid_date(value):
                result.errors.append(f'{label}: Invalid {key} format "{value}". Expected YYYY-MM-DD')
        _check_link(result.errors, label, "registrationUrl", item.get("registrationUrl"))
    return result
