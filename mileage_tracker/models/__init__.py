from .base import BaseModel
from .staff import Staff
from .trip import Trip, TripStatus
from .visit import Visit, VisitStatus
from .performance import DailyPerformanceStat, AppliedActivityEvent, DAY_PERIOD

__all__ = [
    "BaseModel",
    "Staff",
    "Trip",
    "TripStatus",
    "Visit",
    "VisitStatus",
    "DailyPerformanceStat",
    "AppliedActivityEvent",
    "DAY_PERIOD",
]
