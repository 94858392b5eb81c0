"""Timestamps as stored on records.

Records carry ISO-8601 UTC strings with millisecond precision and a "Z"
suffix, e.g. "2025-01-15T10:30:00.000Z".
"""

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def to_iso(dt: datetime) -> str:
    """Format a datetime as a record timestamp. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    """Get the current time as a record timestamp."""
    return to_iso(now_utc())


def from_iso(value: str) -> datetime:
    """Parse a record timestamp; accepts a "Z" suffix or an explicit offset."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
