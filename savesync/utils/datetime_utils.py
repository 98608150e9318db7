"""Timestamp helpers shared by the cloud document models.

Cloud documents carry RFC 3339 timestamps in UTC with a ``Z`` suffix,
optionally with up to nanosecond precision. Everything in memory is a
timezone-aware :class:`datetime.datetime`.
"""
import re
from datetime import datetime, timezone
from typing import Optional, Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FRACTION_RE = re.compile(r'\.(\d+)')


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize *value* as RFC 3339 with a ``Z`` suffix.

    Example:
        >>> format_timestamp(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        '2024-05-01T12:00:00Z'
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Fractional seconds beyond microseconds are truncated. Naive values
    are taken to be UTC.

    Raises:
        ValueError: If *value* is not a valid timestamp
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str):
            raise ValueError(f"Invalid timestamp: {value!r}")
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def from_epoch_ms(value: int) -> Optional[datetime]:
    """Convert epoch milliseconds to a datetime (``None`` for 0)."""
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_epoch_ms(value: Optional[datetime]) -> int:
    """Convert a datetime to epoch milliseconds (0 for ``None``)."""
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)
