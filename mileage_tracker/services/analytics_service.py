"""
GPS analytics over the daily performance rollups.
Totals, period-over-period change, gap-filled daily series and the per-staff
mileage breakdown for the agency dashboard.
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..config.settings import get_settings
from ..core.exceptions import InvalidTimeRangeError, NotFoundError
from ..models.performance import DailyPerformanceStat, efficiency_score
from ..models.staff import Staff
from ..repositories.base import persistence_guard
from ..repositories.performance_repo import performance_repository
from ..repositories.staff_repo import staff_repository
from ..schemas.analytics import TimeRange
from ..utils.date_utils import DateUtils
from ..utils.number_utils import round_half_up

logger = get_logger(__name__)

_ADDITIVE_FIELDS = ("total_miles", "total_cost", "total_drive_time", "total_visit_time", "total_visits")


def aggregate_stats(rows: Iterable[DailyPerformanceStat], co2_lbs_per_mile: Optional[float] = None) -> Dict[str, Any]:
    """Sum daily rows; efficiency is recomputed from the summed times."""
    if co2_lbs_per_mile is None:
        co2_lbs_per_mile = get_settings().CO2_LBS_PER_MILE

    totals = {field: 0 for field in _ADDITIVE_FIELDS}
    totals["total_miles"] = 0.0
    totals["total_cost"] = 0.0
    for row in rows:
        for field in _ADDITIVE_FIELDS:
            totals[field] += getattr(row, field) or 0

    totals["avg_efficiency"] = efficiency_score(totals["total_visit_time"], totals["total_drive_time"])
    totals["co2_reduction_lbs"] = totals["total_miles"] * co2_lbs_per_mile
    return totals


def sum_by_date(rows: Sequence[DailyPerformanceStat], field: str) -> Dict[str, float]:
    """Per-day totals of ``field`` keyed by YYYY-MM-DD"""
    if not rows:
        return {}
    frame = pd.DataFrame(
        [{"date": row.date.strftime('%Y-%m-%d'), "value": float(getattr(row, field) or 0)} for row in rows]
    )
    return frame.groupby("date")["value"].sum().to_dict()


def fill_daily_series(values: Mapping[str, float], start_date: date, end_date: date) -> List[Tuple[str, float]]:
    """
    One (day, value) pair for every calendar day in [start_date, end_date],
    ascending, with days missing from ``values`` valued 0.
    """
    days = DateUtils.date_range_strings(start_date, end_date)
    series = pd.Series(dict(values), dtype="float64").reindex(days, fill_value=0.0)
    return [(day, float(value)) for day, value in series.items()]


def compare_periods(current: float, previous: float) -> float:
    """Percent change from ``previous`` to ``current``, 1dp; 0 with no baseline."""
    if not previous:
        return 0.0
    return round_half_up((current - previous) / previous * 100, 1)


def per_staff_breakdown(staff: Sequence[Staff], rows: Sequence[DailyPerformanceStat]) -> List[Dict[str, Any]]:
    """
    Miles, efficiency and cost per staff member over ``rows``. Staff who
    drove nothing are left out; the rest are ordered by miles, highest first.
    """
    rows_by_staff: Dict[int, List[DailyPerformanceStat]] = {}
    for row in rows:
        rows_by_staff.setdefault(row.staff_id, []).append(row)

    breakdown = []
    for member in staff:
        totals = aggregate_stats(rows_by_staff.get(member.id, []), co2_lbs_per_mile=0)
        miles = round_half_up(totals["total_miles"], 2)
        if miles <= 0:
            continue
        breakdown.append({
            "id": member.id,
            "name": member.name,
            "role": member.role,
            "miles": miles,
            "efficiency": totals["avg_efficiency"],
            "cost": round_half_up(totals["total_cost"], 2),
        })

    breakdown.sort(key=lambda entry: entry["miles"], reverse=True)
    return breakdown


def parse_time_range(value: Optional[str]) -> TimeRange:
    if value is None:
        return TimeRange.SEVEN_DAYS
    try:
        return TimeRange(value)
    except ValueError:
        raise InvalidTimeRangeError(value, [choice.value for choice in TimeRange])


class AnalyticsService:
    """Agency-wide or single-staff GPS analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def get_gps_analytics(
        self,
        time_range: Optional[str] = None,
        staff_id: Optional[int] = None,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        window = parse_time_range(time_range)
        today = today or DateUtils.local_today()
        start_date, end_date = DateUtils.window_ending(today, window.days)
        prev_start, prev_end = DateUtils.previous_window(start_date, end_date)

        with persistence_guard(self.db, "gps analytics", staff_id=staff_id):
            if staff_id is not None and not staff_repository.exists(self.db, staff_id):
                raise NotFoundError("Staff", staff_id)

            rows = performance_repository.get_range(self.db, start_date, end_date, staff_id=staff_id)
            previous_rows = performance_repository.get_range(self.db, prev_start, prev_end, staff_id=staff_id)
            staff = staff_repository.get_active_staff(self.db, staff_id=staff_id)

        totals = aggregate_stats(rows, self.settings.CO2_LBS_PER_MILE)
        previous = aggregate_stats(previous_rows, self.settings.CO2_LBS_PER_MILE)

        daily_mileage = fill_daily_series(sum_by_date(rows, "total_miles"), start_date, end_date)
        daily_costs = fill_daily_series(sum_by_date(rows, "total_cost"), start_date, end_date)

        logger.debug(
            f"GPS analytics {window.value} {start_date}..{end_date}: {len(rows)} rows, "
            f"{len(previous_rows)} previous rows"
        )

        return {
            "time_range": window,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "staff_id": staff_id,
            "total_miles": round_half_up(totals["total_miles"], 2),
            "total_cost": round_half_up(totals["total_cost"], 2),
            "avg_efficiency": totals["avg_efficiency"],
            "total_hours": round_half_up(totals["total_drive_time"] / 60, 1),
            "co2_reduction": round_half_up(totals["co2_reduction_lbs"], 2),
            "miles_change": compare_periods(totals["total_miles"], previous["total_miles"]),
            "cost_change": compare_periods(totals["total_cost"], previous["total_cost"]),
            "daily_mileage": [{"date": day, "miles": round_half_up(miles, 2)} for day, miles in daily_mileage],
            "daily_costs": [{"date": day, "cost": round_half_up(cost, 2)} for day, cost in daily_costs],
            "staff_performance": per_staff_breakdown(staff, rows),
        }
