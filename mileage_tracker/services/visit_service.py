from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..config.settings import get_settings
from ..core.exceptions import (
    InvalidCoordinatesError,
    NotFoundError,
    TripNotActiveError,
    ValidationError,
    VisitNotInProgressError,
)
from ..models.visit import Visit, VisitStatus
from ..repositories.base import persistence_guard
from ..repositories.staff_repo import staff_repository
from ..repositories.trip_repo import trip_repository
from ..repositories.visit_repo import visit_repository
from ..utils.date_utils import DateUtils
from ..utils.geo_utils import GeoUtils, Location
from ..utils.number_utils import round_half_up
from .performance_service import PerformanceService

logger = get_logger(__name__)


class VisitService:
    """Patient visits made during a trip"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def start_visit(
        self,
        staff_id: int,
        trip_id: Optional[int] = None,
        patient_name: Optional[str] = None,
        patient_address: Optional[str] = None,
        visit_type: Optional[str] = None,
        scheduled_time: Optional[datetime] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Start a visit against the staff member's active trip. Drive time to
        the visit is estimated from the straight-line distance between the
        trip start and the visit location.
        """
        if (latitude is None) != (longitude is None):
            raise InvalidCoordinatesError(latitude, longitude)
        visit_location = None
        if latitude is not None:
            try:
                visit_location = Location(latitude, longitude, patient_address).to_dict()
            except ValueError:
                raise InvalidCoordinatesError(latitude, longitude)
        now = now or DateUtils.get_utc_now()

        with persistence_guard(self.db, "start visit", staff_id=staff_id, trip_id=trip_id):
            if not staff_repository.exists(self.db, staff_id):
                raise NotFoundError("Staff", staff_id)

            if trip_id is not None:
                trip = trip_repository.get(self.db, trip_id)
                if not trip:
                    raise NotFoundError("Trip", trip_id)
                if trip.staff_id != staff_id:
                    raise ValidationError(f"Trip {trip_id} does not belong to staff {staff_id}", field="tripId")
                if not trip.is_active:
                    raise TripNotActiveError(trip_id, trip.status)
            else:
                trip = trip_repository.get_active_for_staff(self.db, staff_id)
                if not trip:
                    raise NotFoundError(
                        "Trip", staff_id,
                        message="No active trip found. Please start a trip first."
                    )

            distance = 0.0
            if visit_location and trip.start_location:
                distance = GeoUtils.haversine_distance(trip.start_location, visit_location)
            drive_time = GeoUtils.estimate_drive_minutes(distance, self.settings.VISIT_AVG_SPEED_MPH)

            visit = visit_repository.create(self.db, obj_in={
                "staff_id": staff_id,
                "trip_id": trip.id,
                "patient_name": patient_name,
                "patient_address": patient_address,
                "visit_type": visit_type,
                "scheduled_time": scheduled_time,
                "visit_location": visit_location,
                "drive_time_to_visit": drive_time,
                "distance_to_visit": round_half_up(distance, 2),
                "start_time": now,
                "status": VisitStatus.IN_PROGRESS.value,
            })

        logger.info(
            f"Visit {visit.id} started for staff {staff_id} on trip {visit.trip_id}",
            extra={"staff_id": staff_id, "trip_id": visit.trip_id, "visit_id": visit.id}
        )
        return {
            "id": visit.id,
            "trip_id": visit.trip_id,
            "patient_name": visit.patient_name,
            "start_time": DateUtils.ensure_utc(visit.start_time),
            "drive_time": visit.drive_time_to_visit,
            "distance": visit.distance_to_visit,
        }

    def end_visit(
        self,
        visit_id: int,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Complete a visit and add its duration and one visit to the day's stats."""
        now = now or DateUtils.get_utc_now()

        with persistence_guard(self.db, "end visit", visit_id=visit_id):
            visit: Optional[Visit] = visit_repository.get(self.db, visit_id)
            if not visit:
                raise NotFoundError("Visit", visit_id)
            if not visit.in_progress:
                raise VisitNotInProgressError(visit_id, visit.status)

            staff_id = visit.staff_id
            duration = max(DateUtils.minutes_between(visit.start_time, now), 0)
            if not visit_repository.complete(
                self.db, visit_id=visit_id, end_time=now, duration=duration, notes=notes
            ):
                raise VisitNotInProgressError(visit_id, VisitStatus.COMPLETED.value)

        logger.info(f"Visit {visit_id} completed after {duration}min", extra={"staff_id": staff_id, "visit_id": visit_id})

        PerformanceService(self.db).record_activity(
            staff_id=staff_id,
            stat_date=DateUtils.local_date(now),
            drive_time_delta=0,
            miles_delta=0.0,
            visit_time_delta=duration,
            visits_delta=1,
            event_key=f"visit:{visit_id}",
        )

        return {"id": visit_id, "duration": duration, "end_time": now}
