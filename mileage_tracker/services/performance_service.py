"""
Performance stats aggregation for field staff.
Folds completed trips and visits into per-staff daily rows and reads back
today's row alongside the weekly rollup.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_performance
from ..config.settings import get_settings
from ..core.exceptions import NotFoundError, ValidationError
from ..models.performance import DailyPerformanceStat, average_visit_duration, efficiency_score
from ..models.visit import VisitStatus
from ..repositories.base import persistence_guard
from ..repositories.performance_repo import performance_repository
from ..repositories.staff_repo import staff_repository
from ..repositories.visit_repo import visit_repository
from ..utils.date_utils import DateUtils
from ..utils.number_utils import round_half_up
from .analytics_service import aggregate_stats
from .staff_status import resolve_status

logger = get_logger(__name__)


class PerformanceService:
    """Daily performance rollups for a staff member"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    @log_performance("mileage_tracker.performance")
    def record_activity(
        self,
        staff_id: int,
        stat_date: date,
        drive_time_delta: int,
        miles_delta: float,
        visit_time_delta: int = 0,
        visits_delta: int = 0,
        event_key: Optional[str] = None
    ) -> DailyPerformanceStat:
        """
        Add drive time, miles, visit time and visits to the staff member's row
        for ``stat_date`` and re-price the day at their current rate.

        With an ``event_key`` the same completion can only ever be counted
        once; replays return the row unchanged.
        """
        for name, value in (
            ("driveTimeDelta", drive_time_delta),
            ("milesDelta", miles_delta),
            ("visitTimeDelta", visit_time_delta),
            ("visitsDelta", visits_delta),
        ):
            if value is None or value < 0:
                raise ValidationError(f"{name} must be a non-negative number", field=name)

        with persistence_guard(self.db, "performance stats update", staff_id=staff_id):
            if not staff_repository.exists(self.db, staff_id):
                raise NotFoundError("Staff", staff_id)

            cost_per_mile = staff_repository.get_cost_per_mile(
                self.db, staff_id, self.settings.DEFAULT_COST_PER_MILE
            )
            row, applied = performance_repository.apply_activity(
                self.db,
                staff_id=staff_id,
                stat_date=stat_date,
                drive_time=int(drive_time_delta),
                miles=float(miles_delta),
                visit_time=int(visit_time_delta),
                visits=int(visits_delta),
                cost_per_mile=cost_per_mile,
                event_key=event_key,
            )

        if applied:
            logger.info(
                f"Recorded activity for staff {staff_id} on {stat_date}: "
                f"+{drive_time_delta}min drive, +{miles_delta:.2f}mi, "
                f"+{visit_time_delta}min visit, +{visits_delta} visits",
                extra={"staff_id": staff_id}
            )
        return row

    def get_staff_stats(self, staff_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Today's row, the rolling weekly rollup and today's visits."""
        now = now or DateUtils.get_utc_now()
        today = DateUtils.local_date(now)

        with persistence_guard(self.db, "performance stats read", staff_id=staff_id):
            staff = staff_repository.get(self.db, staff_id)
            if not staff:
                raise NotFoundError("Staff", staff_id)

            cost_per_mile = staff.effective_cost_per_mile(self.settings.DEFAULT_COST_PER_MILE)
            today_row = performance_repository.get_daily(self.db, staff_id, today)

            week_start, week_end = DateUtils.window_ending(today, self.settings.WEEKLY_WINDOW_DAYS)
            week_rows = performance_repository.get_range(self.db, week_start, week_end, staff_id=staff_id)

            day_start, day_end = DateUtils.day_bounds_utc(today)
            visits = visit_repository.get_for_staff_between(self.db, staff_id, day_start, day_end)

            status = resolve_status(self.db, staff_id, now=now)

        return {
            "staff": {"id": staff.id, "name": staff.name, "role": staff.role},
            "status": status,
            "today_stats": self._row_totals(today_row, cost_per_mile),
            "week_stats": self._rollup_totals(week_rows, cost_per_mile),
            "visits": [self._visit_summary(visit, now) for visit in visits],
        }

    @staticmethod
    def _row_totals(row: Optional[DailyPerformanceStat], cost_per_mile: float) -> Dict[str, Any]:
        if row is None:
            return {"cost_per_mile": cost_per_mile}
        return {
            "total_drive_time": row.total_drive_time or 0,
            "total_visits": row.total_visits or 0,
            "total_miles": round_half_up(row.total_miles or 0, 2),
            "total_visit_time": row.total_visit_time or 0,
            "avg_visit_duration": row.avg_visit_duration or 0.0,
            "efficiency_score": row.efficiency_score or 0,
            "cost_per_mile": cost_per_mile,
            "total_cost": round_half_up(row.total_cost or 0, 2),
        }

    @staticmethod
    def _rollup_totals(rows, cost_per_mile: float) -> Dict[str, Any]:
        totals = aggregate_stats(rows)
        return {
            "total_drive_time": totals["total_drive_time"],
            "total_visits": totals["total_visits"],
            "total_miles": round_half_up(totals["total_miles"], 2),
            "total_visit_time": totals["total_visit_time"],
            "avg_visit_duration": average_visit_duration(totals["total_visit_time"], totals["total_visits"]),
            "efficiency_score": efficiency_score(totals["total_visit_time"], totals["total_drive_time"]),
            "cost_per_mile": cost_per_mile,
            "total_cost": round_half_up(totals["total_cost"], 2),
        }

    @staticmethod
    def _visit_summary(visit, now: datetime) -> Dict[str, Any]:
        duration = visit.duration or 0
        if visit.status == VisitStatus.IN_PROGRESS.value and not visit.duration:
            duration = DateUtils.minutes_between(visit.start_time, now)
        return {
            "id": visit.id,
            "patient_name": visit.patient_name,
            "patient_address": visit.patient_address,
            "visit_type": visit.visit_type,
            "status": visit.status,
            "start_time": DateUtils.ensure_utc(visit.start_time),
            "end_time": DateUtils.ensure_utc(visit.end_time),
            "duration": duration,
            "drive_time_to_visit": visit.drive_time_to_visit or 0,
            "distance_to_visit": visit.distance_to_visit or 0.0,
        }
