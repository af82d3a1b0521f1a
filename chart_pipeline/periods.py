from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Optional

from .points import AggregationLevel

# Use local timezone for day-based grouping (JST if the PC is set to JST)
LOCAL_TZ = datetime.now().astimezone().tzinfo


def local_now() -> datetime:
    return datetime.now(LOCAL_TZ)


def start_of_day(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    if tz is not None and dt.tzinfo is not None:
        dt = dt.astimezone(tz)
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


class TimePeriod(str, Enum):
    WEEK = "7D"
    MONTH = "30D"
    THREE_MONTH = "3M"
    SIX_MONTH = "6M"
    YEAR = "1Y"
    ALL_TIME = "All"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def days(self) -> Optional[int]:
        return _DAYS[self]

    @property
    def aggregation_level(self) -> AggregationLevel:
        """Bucket size a chart uses for this period before density checks."""
        if self in (TimePeriod.WEEK, TimePeriod.MONTH):
            return AggregationLevel.DAILY
        if self in (TimePeriod.THREE_MONTH, TimePeriod.SIX_MONTH):
            return AggregationLevel.WEEKLY
        return AggregationLevel.MONTHLY

    def date_range(self, now: Optional[datetime] = None) -> Optional[tuple[datetime, datetime]]:
        """Inclusive (start, end) covering the last `days` calendar days, or None for all time."""
        days = self.days
        if days is None:
            return None
        today = start_of_day(now or local_now())
        return today - timedelta(days=days - 1), today + timedelta(days=1)

    def contains(self, dt: datetime, now: Optional[datetime] = None) -> bool:
        rng = self.date_range(now)
        if rng is None:
            return True
        start, end = rng
        return start <= dt <= end


_DISPLAY_NAMES = {
    TimePeriod.WEEK: "7 Days",
    TimePeriod.MONTH: "30 Days",
    TimePeriod.THREE_MONTH: "3 Months",
    TimePeriod.SIX_MONTH: "6 Months",
    TimePeriod.YEAR: "1 Year",
    TimePeriod.ALL_TIME: "All Time",
}

_DAYS: dict[TimePeriod, Optional[int]] = {
    TimePeriod.WEEK: 7,
    TimePeriod.MONTH: 30,
    TimePeriod.THREE_MONTH: 90,
    TimePeriod.SIX_MONTH: 180,
    TimePeriod.YEAR: 365,
    TimePeriod.ALL_TIME: None,
}
