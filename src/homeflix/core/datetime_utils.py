"""Timestamps as stored in the database: ISO-8601 text in UTC."""

from datetime import datetime, timezone


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso_timestamp(timestamp: str) -> datetime:
    """Parse a stored timestamp into an aware datetime.

    A trailing ``Z`` is accepted and a value without an offset is taken
    to be UTC.
    """
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"
    parsed = datetime.fromisoformat(timestamp)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def current_year() -> int:
    return datetime.now(timezone.utc).year
