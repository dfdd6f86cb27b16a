"""UTC normalization and wire formatting for snapshot instants."""

from datetime import datetime, timezone

from covidapi.app.errors import DateParseError


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken to be UTC.

    SQLite hands back naive datetimes for timezone-aware columns, so anything
    read from the warehouse goes through here before comparison.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime:
    text = value.strip()
    try:
        return as_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError) as exc:
        raise DateParseError(value) from exc
