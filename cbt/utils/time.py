from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calendar_date(value: Optional[datetime]) -> Optional[str]:
    """UTC calendar date as YYYY-MM-DD, or None when there is no timestamp."""
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).date().isoformat()
