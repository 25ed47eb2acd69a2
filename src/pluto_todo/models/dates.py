# src/pluto_todo/models/dates.py

"""
Timestamp helpers.

Everything is kept timezone-aware in UTC. Stored timestamps use one
fixed-width text format so that SQL text comparison matches time order.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

# Stored layout is YYYY-MM-DDTHH:MM:SS.ffffffZ. The year is padded by hand:
# strftime("%Y") drops the zero padding of years below 1000 on glibc.
_AFTER_YEAR_FORMAT = "-%m-%dT%H:%M:%S.%fZ"

START_OF_DAY = "T00:00:00Z"
END_OF_DAY = "T23:59:59Z"

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    dt = to_utc(dt)
    return f"{dt.year:04d}" + dt.strftime(_AFTER_YEAR_FORMAT)


def format_optional(dt: datetime | None) -> str | None:
    return format_timestamp(dt) if dt is not None else None


def parse_stored(raw: str | None) -> datetime | None:
    """Parse a timestamp read back from the database."""
    if not raw:
        return None
    return to_utc(datetime.fromisoformat(raw))


def _parse_rfc3339(s: str) -> datetime | None:
    # RFC 3339 needs a time part and an explicit offset.
    if len(s) < 11 or s[10] not in "Tt ":
        return None
    if s[-1] in "zZ":
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s[:10] + "T" + s[11:])
        if dt.tzinfo is None:
            return None
        # Offsets near year 1 or 9999 can leave the representable range.
        return dt.astimezone(UTC)
    except (ValueError, OverflowError):
        return None


def parse_due_date(raw: str | datetime | None, default_time: str = START_OF_DAY) -> datetime | None:
    """
    Parse user-supplied due date input.

    Accepts a full RFC 3339 timestamp, or a bare ``YYYY-MM-DD`` date which is
    completed with ``default_time``. Empty or unparsable input yields None
    instead of an error.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return to_utc(raw)

    s = str(raw).strip()
    if not s:
        return None

    dt = _parse_rfc3339(s)
    if dt is None and _BARE_DATE.match(s):
        dt = _parse_rfc3339(s + default_time)
    return dt
