"""
Date and time utility functions for mileage tracking.
Handles timezone operations, reporting windows and calendar-day series.
"""

from datetime import datetime, date, timedelta
from typing import List, Optional, Tuple

import pandas as pd
import pytz

from ..config.settings import get_settings
from .number_utils import round_int

UTC_TZ = pytz.UTC


class DateUtils:
    """Date helpers for trips, daily rollups and analytics windows."""

    @staticmethod
    def agency_timezone(tz_name: Optional[str] = None):
        return pytz.timezone(tz_name or get_settings().AGENCY_TIMEZONE)

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC time."""
        return datetime.now(UTC_TZ)

    @staticmethod
    def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes (as returned by SQLite) as UTC."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return UTC_TZ.localize(dt)
        return dt.astimezone(UTC_TZ)

    @staticmethod
    def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
        """Calendar day of ``dt`` in the agency timezone."""
        tz = DateUtils.agency_timezone(tz_name)
        return DateUtils.ensure_utc(dt).astimezone(tz).date()

    @staticmethod
    def local_today(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
        return DateUtils.local_date(now or DateUtils.get_utc_now(), tz_name)

    @staticmethod
    def day_bounds_utc(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
        """[start, end) of an agency-local calendar day, in UTC."""
        tz = DateUtils.agency_timezone(tz_name)
        start = tz.localize(datetime.combine(day, datetime.min.time()))
        end = tz.localize(datetime.combine(day + timedelta(days=1), datetime.min.time()))
        return start.astimezone(UTC_TZ), end.astimezone(UTC_TZ)

    @staticmethod
    def minutes_between(start: datetime, end: datetime) -> int:
        """Whole minutes elapsed, rounded to nearest."""
        elapsed = DateUtils.ensure_utc(end) - DateUtils.ensure_utc(start)
        return round_int(elapsed.total_seconds() / 60)

    @staticmethod
    def window_ending(end_date: date, days: int) -> Tuple[date, date]:
        """Inclusive window of ``days`` calendar days ending on ``end_date``."""
        return end_date - timedelta(days=days - 1), end_date

    @staticmethod
    def previous_window(start_date: date, end_date: date) -> Tuple[date, date]:
        """The window of equal length immediately before [start_date, end_date]."""
        length = (end_date - start_date).days + 1
        return start_date - timedelta(days=length), start_date - timedelta(days=1)

    @staticmethod
    def date_range_strings(start_date: date, end_date: date) -> List[str]:
        """Every calendar day in [start_date, end_date] as YYYY-MM-DD, ascending."""
        return [d.strftime('%Y-%m-%d') for d in pd.date_range(start=start_date, end=end_date, freq='D')]

    @staticmethod
    def to_iso(dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return DateUtils.ensure_utc(dt).isoformat()
