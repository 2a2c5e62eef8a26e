from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def parse_instant(value) -> datetime:
    """Parse an ISO-8601 instant (``Z`` suffix allowed) into an aware UTC datetime.

    Raises ValueError for anything that is not a datetime or an ISO string.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date value: {value!r}")
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    return as_utc(datetime.fromisoformat(text))


def to_epoch_millis(value: datetime) -> int:
    return int(as_utc(value).timestamp() * 1000)


def from_epoch_millis(millis) -> datetime:
    return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc)


def isoformat_z(value):
    if value is None:
        return None
    return as_utc(value).strftime('%Y-%m-%dT%H:%M:%SZ')


def format_report_datetime(value: datetime) -> str:
    # MM/DD/YYYY HH:MM, 24 hour
    return value.strftime('%m/%d/%Y %H:%M')
