"""Time helpers: every instant is handled as an aware UTC datetime."""

from datetime import UTC, date, datetime
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_day(value: Union[date, datetime, str]) -> date:
    """Reduce an instant or ISO string to its calendar day."""
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))).date()
    except ValueError:
        return date.fromisoformat(text[:10])
