"""
Trip lifecycle for field staff: starting a trip, recording route points,
completing it with distance and cost, and answering "where is this staff
member right now".
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_performance
from ..config.settings import get_settings
from ..core.exceptions import (
    ActiveTripExistsError,
    ConflictError,
    InvalidCoordinatesError,
    NotFoundError,
    TripNotActiveError,
    ValidationError,
)
from ..models.staff import Staff
from ..models.trip import Trip
from ..repositories.base import persistence_guard
from ..repositories.staff_repo import staff_repository
from ..repositories.trip_repo import trip_repository
from ..repositories.visit_repo import visit_repository
from ..utils.date_utils import DateUtils
from ..utils.geo_utils import GeoUtils, Location
from ..utils.number_utils import round_half_up
from .performance_service import PerformanceService
from .staff_status import current_location, status_for

logger = get_logger(__name__)


def _location(latitude: float, longitude: float, address: Optional[str] = None) -> Dict[str, Any]:
    try:
        return Location(latitude, longitude, address).to_dict()
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(latitude, longitude)


class TripService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _get_staff(self, staff_id: int) -> Staff:
        staff = staff_repository.get(self.db, staff_id)
        if not staff:
            raise NotFoundError("Staff", staff_id)
        return staff

    def _get_trip(self, trip_id: int) -> Trip:
        trip = trip_repository.get(self.db, trip_id)
        if not trip:
            raise NotFoundError("Trip", trip_id)
        return trip

    def start_trip(
        self,
        staff_id: int,
        latitude: float,
        longitude: float,
        address: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Trip:
        """Open a new active trip; a staff member may only drive one at a time."""
        start_location = _location(latitude, longitude, address)
        now = now or DateUtils.get_utc_now()

        with persistence_guard(self.db, "start trip", staff_id=staff_id):
            self._get_staff(staff_id)

            existing = trip_repository.get_active_for_staff(self.db, staff_id)
            if existing:
                raise ActiveTripExistsError(staff_id, existing.id)

            try:
                trip = trip_repository.create_active(
                    self.db,
                    staff_id=staff_id,
                    start_time=now,
                    start_location=start_location,
                )
            except IntegrityError:
                # Lost a race with a concurrent start for the same staff member
                self.db.rollback()
                existing = trip_repository.get_active_for_staff(self.db, staff_id)
                if existing:
                    raise ActiveTripExistsError(staff_id, existing.id)
                raise ConflictError(f"Could not start a trip for staff {staff_id}")

        logger.info(f"Trip {trip.id} started for staff {staff_id}", extra={"staff_id": staff_id, "trip_id": trip.id})
        return trip

    def append_route_point(
        self,
        trip_id: int,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
        speed: Optional[float] = None
    ) -> Trip:
        if speed is not None and speed < 0:
            raise ValidationError("Speed must be non-negative", field="speed")
        coordinates = _location(latitude, longitude)

        with persistence_guard(self.db, "append route point", trip_id=trip_id):
            trip = self._get_trip(trip_id)
            if not trip.is_active:
                raise TripNotActiveError(trip_id, trip.status)

            point = {
                "lat": coordinates["lat"],
                "lng": coordinates["lng"],
                "timestamp": DateUtils.to_iso(timestamp or DateUtils.get_utc_now()),
                "speed": speed,
            }
            return trip_repository.append_route_point(self.db, trip, point)

    @log_performance("mileage_tracker.trips")
    def end_trip(
        self,
        trip_id: Optional[int] = None,
        staff_id: Optional[int] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        address: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Complete a trip and fold its drive time and miles into the staff
        member's daily stats.

        The trip is resolved by ``trip_id`` when given, otherwise as the staff
        member's most recent active trip. Distance comes from the recorded
        route when it has at least two points, else the straight line from
        start to the supplied end coordinates.
        """
        if trip_id is None and staff_id is None:
            raise ValidationError("Trip ID or Staff ID is required", field="tripId")
        if (latitude is None) != (longitude is None):
            raise InvalidCoordinatesError(latitude, longitude)
        end_location = _location(latitude, longitude, address) if latitude is not None else None
        now = now or DateUtils.get_utc_now()

        with persistence_guard(self.db, "end trip", trip_id=trip_id, staff_id=staff_id):
            if trip_id is not None:
                trip = self._get_trip(trip_id)
                if not trip.is_active:
                    raise TripNotActiveError(trip.id, trip.status)
            else:
                trip = trip_repository.get_active_for_staff(self.db, staff_id)
                if not trip:
                    raise NotFoundError(
                        "Trip", staff_id,
                        message="Active trip not found. Please start a trip first."
                    )

            trip_id = trip.id
            staff_id = trip.staff_id
            drive_minutes = max(DateUtils.minutes_between(trip.start_time, now), 0)
            distance = GeoUtils.route_distance(trip.points, trip.start_location, end_location)

            completed = trip_repository.complete(
                self.db,
                trip_id=trip_id,
                end_time=now,
                end_location=end_location,
                total_distance=round_half_up(distance, 2),
                total_drive_time=drive_minutes,
            )
            if not completed:
                raise TripNotActiveError(trip_id, "completed")

        logger.info(
            f"Trip {trip_id} completed: {distance:.2f}mi in {drive_minutes}min",
            extra={"staff_id": staff_id, "trip_id": trip_id}
        )

        # trip completion is already committed; applied at most once per trip
        PerformanceService(self.db).record_activity(
            staff_id=staff_id,
            stat_date=DateUtils.local_date(now),
            drive_time_delta=drive_minutes,
            miles_delta=distance,
            event_key=f"trip:{trip_id}",
        )

        with persistence_guard(self.db, "cost lookup", staff_id=staff_id):
            cost_per_mile = staff_repository.get_cost_per_mile(
                self.db, staff_id, self.settings.DEFAULT_COST_PER_MILE
            )

        return {
            "trip_id": trip_id,
            "total_drive_time": drive_minutes,
            "total_distance": round_half_up(distance, 2),
            "cost_per_mile": cost_per_mile,
            "total_cost": round_half_up(distance * cost_per_mile, 2),
        }

    def get_staff_location(self, staff_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or DateUtils.get_utc_now()

        with persistence_guard(self.db, "staff location", staff_id=staff_id):
            staff = self._get_staff(staff_id)
            trip = trip_repository.get_active_for_staff(self.db, staff_id)
            visit = visit_repository.get_in_progress_for_staff(self.db, staff_id)

        location = current_location(trip, now)
        active_trip = None
        if trip is not None:
            active_trip = {
                "id": trip.id,
                "start_time": DateUtils.ensure_utc(trip.start_time),
                "start_location": trip.start_location,
                "route_points": trip.points,
            }
        current_visit = None
        if visit is not None:
            current_visit = {
                "id": visit.id,
                "patient_name": visit.patient_name,
                "patient_address": visit.patient_address,
                "visit_location": visit.visit_location,
                "start_time": DateUtils.ensure_utc(visit.start_time),
            }

        return {
            "staff": {"id": staff.id, "name": staff.name, "department": staff.department},
            "status": status_for(trip, visit, location, now),
            "has_active_trip": trip is not None,
            "active_trip": active_trip,
            "current_location": location,
            "current_visit": current_visit,
        }
