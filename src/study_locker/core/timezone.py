"""Time zone helpers"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from study_locker.config.settings import get_settings


def get_timezone():
    """Configured time zone"""
    settings = get_settings()
    return ZoneInfo(settings.timezone)


def now() -> datetime:
    """Current local time (naive datetime)"""
    # Stored timestamps are naive local time; the DB session uses the same zone
    return datetime.now(get_timezone()).replace(tzinfo=None)


def to_local(dt: datetime) -> datetime:
    """Convert a datetime to the configured zone"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=get_timezone())
    return dt.astimezone(get_timezone())


def local_date(dt: datetime | None = None) -> date:
    """Calendar day (local midnight key) of the given or current time"""
    if dt is None:
        dt = now()
    elif dt.tzinfo is not None:
        dt = to_local(dt).replace(tzinfo=None)
    return dt.date()
