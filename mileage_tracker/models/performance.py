"""
Daily performance rollups and the ledger of completion events applied to them.
"""
from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ..utils.number_utils import round_half_up, safe_ratio_percent
from .base import BaseModel

DAY_PERIOD = "day"


class DailyPerformanceStat(BaseModel):
    """
    One row per (staff, date, period). Additive columns are only ever changed
    through atomic increments; the derived columns are recomputed from them.
    """
    __tablename__ = 'staff_performance_stats'

    staff_id = Column(Integer, ForeignKey('staff.id'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    period = Column(String(10), nullable=False, default=DAY_PERIOD)

    # Additive
    total_drive_time = Column(Integer, nullable=False, default=0)  # minutes
    total_visits = Column(Integer, nullable=False, default=0)
    total_miles = Column(Float, nullable=False, default=0.0)
    total_visit_time = Column(Integer, nullable=False, default=0)  # minutes

    # Derived
    total_cost = Column(Float, nullable=False, default=0.0)
    cost_per_mile = Column(Float, nullable=True)  # rate used for total_cost
    avg_visit_duration = Column(Float, nullable=False, default=0.0)
    efficiency_score = Column(Integer, nullable=False, default=0)

    staff = relationship("Staff", back_populates="performance_stats")

    __table_args__ = (
        UniqueConstraint('staff_id', 'date', 'period', name='uq_perf_staff_date_period'),
        Index('idx_perf_period_date', 'period', 'date'),
    )

    def recompute_derived(self, cost_per_mile: float) -> None:
        """Re-price the whole day at the current rate and refresh the ratios."""
        self.cost_per_mile = cost_per_mile
        self.total_cost = round_half_up((self.total_miles or 0) * cost_per_mile, 2)
        self.avg_visit_duration = average_visit_duration(self.total_visit_time or 0, self.total_visits or 0)
        self.efficiency_score = efficiency_score(self.total_visit_time or 0, self.total_drive_time or 0)


class AppliedActivityEvent(BaseModel):
    """Completion events (trip end, visit end) already folded into a daily row."""
    __tablename__ = 'applied_activity_events'

    event_key = Column(String(100), nullable=False, unique=True)
    staff_id = Column(Integer, ForeignKey('staff.id'), nullable=False, index=True)
    stat_date = Column(Date, nullable=False)


def efficiency_score(total_visit_time: float, total_drive_time: float) -> int:
    """
    Share of on-duty time spent in patient visits rather than driving, 0-100.
    Defined as 0 when there is no time of either kind.
    """
    return safe_ratio_percent(total_visit_time, (total_visit_time or 0) + (total_drive_time or 0))


def average_visit_duration(total_visit_time: float, total_visits: int) -> float:
    if not total_visits:
        return 0.0
    return round_half_up(total_visit_time / total_visits, 2)
