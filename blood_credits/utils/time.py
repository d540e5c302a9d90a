from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current moment as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Naive datetimes are treated as UTC (SQLite drops tzinfo)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
