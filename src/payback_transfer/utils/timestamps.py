"""ISO-8601 timestamp helpers shared by the codec, models and payloads."""

from datetime import UTC, datetime


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime the way exports carry it: second precision, ``Z`` suffix.

    Args:
        value: Datetime to format (naive values are taken as UTC)

    Returns:
        String such as ``2024-03-01T18:30:00Z``
    """
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime | None:
    """
    Parse an ISO-8601 timestamp.

    Args:
        value: Raw text, with or without fractional seconds or ``Z`` suffix

    Returns:
        UTC-aware datetime, or None if the text is not a timestamp
    """
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return ensure_utc(parsed)


def to_epoch_ms(value: datetime) -> float:
    """Milliseconds since the Unix epoch, as the remote store expects dates."""
    return ensure_utc(value).timestamp() * 1000.0
