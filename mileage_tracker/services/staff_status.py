"""
Where a staff member is and what they are doing, derived from their active
trip and any visit in progress.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..config.settings import get_settings
from ..models.trip import Trip
from ..models.visit import Visit
from ..repositories.trip_repo import trip_repository
from ..repositories.visit_repo import visit_repository
from ..utils.date_utils import DateUtils


def current_location(trip: Optional[Trip], now: datetime) -> Optional[Dict[str, Any]]:
    """Latest known position: last route point, else the trip's start."""
    if trip is None:
        return None

    point = trip.last_point
    if point is not None:
        timestamp = point.get("timestamp")
        seen_at = datetime.fromisoformat(timestamp) if timestamp else None
        latitude, longitude, speed = point["lat"], point["lng"], point.get("speed")
    elif trip.start_location:
        seen_at = trip.start_time
        latitude, longitude, speed = trip.start_location["lat"], trip.start_location["lng"], None
    else:
        return None

    seen_at = DateUtils.ensure_utc(seen_at)
    age_minutes = DateUtils.minutes_between(seen_at, now) if seen_at else None
    return {
        "latitude": latitude,
        "longitude": longitude,
        "speed": speed,
        "timestamp": seen_at,
        "is_recent": age_minutes is not None and age_minutes <= get_settings().LOCATION_STALE_MINUTES,
        "age_minutes": age_minutes,
    }


def status_for(
    trip: Optional[Trip],
    visit: Optional[Visit],
    location: Optional[Dict[str, Any]],
    now: datetime
) -> str:
    """on_visit, driving, active or offline"""
    settings = get_settings()
    if visit is not None:
        return "on_visit"
    if trip is None:
        return "offline"

    recent = bool(location and location["is_recent"])
    if DateUtils.minutes_between(trip.start_time, now) > settings.TRIP_STALE_MINUTES and not recent:
        return "offline"
    if recent and (location["speed"] or 0) > settings.DRIVING_SPEED_MPH:
        return "driving"
    return "active"


def resolve_status(db: Session, staff_id: int, now: Optional[datetime] = None) -> str:
    now = now or DateUtils.get_utc_now()
    trip = trip_repository.get_active_for_staff(db, staff_id)
    visit = visit_repository.get_in_progress_for_staff(db, staff_id)
    return status_for(trip, visit, current_location(trip, now), now)
