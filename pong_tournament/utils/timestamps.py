"""UTC timestamp helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime.

    Columns are plain ``DateTime`` holding UTC, so values written and compared
    in SQL must not carry tzinfo.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch_seconds(value: datetime) -> int:
    """Convert a naive UTC datetime to integer epoch seconds."""
    return int(value.replace(tzinfo=timezone.utc).timestamp())
