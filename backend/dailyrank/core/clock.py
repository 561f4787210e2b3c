"""Calendar policy.

All rating decisions are made on calendar dates in one fixed timezone
(``settings.TIMEZONE``). Timestamps are stored as naive UTC; naive values are
interpreted as UTC when converted.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from dailyrank.core.config import settings

END_OF_DAY = time(23, 59, 59, 999000)


def to_local(ts: datetime, tz: tzinfo) -> datetime:
    """Convert a stored timestamp to a timezone-aware value in ``tz``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz)


def to_utc_naive(ts: datetime) -> datetime:
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


class Clock:
    """Source of "now" and of day boundaries for the configured timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def utcnow(self) -> datetime:
        """Current instant as naive UTC, the storage format."""
        return to_utc_naive(self.now())

    def today(self) -> date:
        return self.now().date()

    def day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        """Inclusive [00:00:00.000, 23:59:59.999] of ``day``, as naive UTC."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day, END_OF_DAY, tzinfo=self.tz)
        return to_utc_naive(start), to_utc_naive(end)

    @staticmethod
    def days_between(earlier: date, later: date) -> int:
        return (later - earlier).days

    @staticmethod
    def previous_day(day: date) -> date:
        return day - timedelta(days=1)


system_clock = Clock()
