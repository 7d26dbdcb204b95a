"""Helpers for converting instants to and from their stored form."""
from datetime import datetime, timezone
from typing import Optional

# Fixed width so that string order in DynamoDB equals chronological order
STORAGE_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Convert a datetime to aware UTC.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> str:
    """Format an instant for storage."""
    return ensure_utc(value).strftime(STORAGE_FORMAT)


def from_storage(value: str) -> datetime:
    """Parse an instant previously written by to_storage."""
    return datetime.strptime(value, STORAGE_FORMAT).replace(tzinfo=timezone.utc)


def parse_iso8601(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from client input.

    Args:
        value: Timestamp string, e.g. "2024-01-15T10:00:00.000Z" or "2024-01-15"

    Returns:
        Aware UTC datetime or None if the string cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    return ensure_utc(parsed)


def to_api(value: Optional[datetime]) -> Optional[str]:
    """Format an instant for API responses (ISO-8601, millisecond precision)."""
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
