from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from ..services.analytics_service import AnalyticsService
from ..services.performance_service import PerformanceService
from ..services.trip_service import TripService
from ..services.visit_service import VisitService


def get_trip_service(db: Session = Depends(get_db)) -> TripService:
    return TripService(db)


def get_visit_service(db: Session = Depends(get_db)) -> VisitService:
    return VisitService(db)


def get_performance_service(db: Session = Depends(get_db)) -> PerformanceService:
    return PerformanceService(db)


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)
