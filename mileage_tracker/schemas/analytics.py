from enum import Enum
from typing import List, Optional

from .common import CamelModel
from .staff import StaffSummary
from .visit import VisitSummary


class TimeRange(str, Enum):
    ONE_DAY = "1d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])


class PerformanceTotals(CamelModel):
    total_drive_time: int = 0
    total_visits: int = 0
    total_miles: float = 0.0
    total_visit_time: int = 0
    avg_visit_duration: float = 0.0
    efficiency_score: int = 0
    cost_per_mile: float
    total_cost: float = 0.0


class StaffPerformanceStatsResponse(CamelModel):
    staff: StaffSummary
    status: str  # on_visit | driving | active | offline
    today_stats: PerformanceTotals
    week_stats: PerformanceTotals
    visits: List[VisitSummary] = []


class DailyMileagePoint(CamelModel):
    date: str
    miles: float


class DailyCostPoint(CamelModel):
    date: str
    cost: float


class StaffPerformanceEntry(CamelModel):
    id: int
    name: str
    role: str
    miles: float
    efficiency: int
    cost: float


class GPSAnalyticsResponse(CamelModel):
    time_range: TimeRange
    start_date: str
    end_date: str
    staff_id: Optional[int] = None
    total_miles: float
    total_cost: float
    avg_efficiency: int
    total_hours: float
    co2_reduction: float
    miles_change: float
    cost_change: float
    daily_mileage: List[DailyMileagePoint]
    daily_costs: List[DailyCostPoint]
    staff_performance: List[StaffPerformanceEntry]
