"""Date parsing utilities for search date-range filters."""

import re
import time
from datetime import date, datetime, timezone
from typing import Any

from dateutil import parser as dateutil_parser

_RELATIVE = re.compile(r"^(\d+)([hdwmy])$")

_UNIT_SECONDS = {
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "m": 30 * 24 * 60 * 60,  # Approximate month
    "y": 365 * 24 * 60 * 60,  # Approximate year
}


def parse_date_filter(value: Any) -> float:
    """
    Parse a date-range bound to a Unix timestamp.

    Supported inputs:
    - ``datetime`` / ``date`` (naive values are interpreted as UTC)
    - Unix seconds as ``int`` / ``float``
    - Relative strings: "12h", "7d", "2w", "1m" (~30d), "1y" (~365d)
    - ISO-8601 strings: "2026-01-15", "2026-01-15T10:30:00Z"

    Args:
        value: Date bound to parse

    Returns:
        Unix timestamp (float)

    Raises:
        ValueError: If the value cannot be interpreted as a point in time
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid date value: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, datetime):
        return _as_utc(value).timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    if not isinstance(value, str):
        raise ValueError(f"Invalid date value: {value!r}")

    text = value.strip()
    relative_match = _RELATIVE.match(text.lower())
    if relative_match:
        amount = int(relative_match.group(1))
        return time.time() - amount * _UNIT_SECONDS[relative_match.group(2)]

    try:
        return _as_utc(dateutil_parser.isoparse(text)).timestamp()
    except (ValueError, OverflowError):
        pass

    raise ValueError(
        f"Invalid date format: {value}. Use relative (e.g., '7d', '1m', '1y') or ISO8601 (e.g., '2026-01-15T10:30:00Z')"
    )


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt
