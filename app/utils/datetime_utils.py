from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are treated as UTC; aware ones are converted to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_utc_day(now: datetime | None = None) -> datetime:
    now = ensure_utc(now) if now is not None else utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)

