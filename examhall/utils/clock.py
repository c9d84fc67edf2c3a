from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def attempt_deadline(start_time: datetime, duration_minutes: int) -> Optional[datetime]:
    if not duration_minutes or duration_minutes <= 0:
        return None
    return as_utc(start_time) + timedelta(minutes=duration_minutes)


def is_expired(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if deadline is None:
        return False
    return (now or utcnow()) > deadline
