# api/v1/endpoints/gps.py
from fastapi import APIRouter, Depends, Query, status

from ....core.dependencies import get_trip_service
from ....schemas.trip import (
    EndTripRequest,
    EndTripResponse,
    RoutePointRequest,
    RoutePointResponse,
    StaffLocationResponse,
    StartTripRequest,
    StartTripResponse,
)
from ....services.trip_service import TripService
from ....utils.date_utils import DateUtils

router = APIRouter()


@router.post("/start-trip", response_model=StartTripResponse, status_code=status.HTTP_201_CREATED)
def start_trip(
    request: StartTripRequest,
    service: TripService = Depends(get_trip_service)
):
    """Start a trip for a staff member at their current location"""
    trip = service.start_trip(
        staff_id=request.staff_id,
        latitude=request.latitude,
        longitude=request.longitude,
        address=request.address,
    )
    return StartTripResponse(trip_id=trip.id, start_time=DateUtils.ensure_utc(trip.start_time))


@router.post("/route-point", response_model=RoutePointResponse)
def add_route_point(
    request: RoutePointRequest,
    service: TripService = Depends(get_trip_service)
):
    """Record a GPS point on an active trip"""
    trip = service.append_route_point(
        trip_id=request.trip_id,
        latitude=request.latitude,
        longitude=request.longitude,
        timestamp=request.timestamp,
        speed=request.speed,
    )
    return RoutePointResponse(trip_id=trip.id, route_point_count=len(trip.points))


@router.post("/end-trip", response_model=EndTripResponse)
def end_trip(
    request: EndTripRequest,
    service: TripService = Depends(get_trip_service)
):
    """End a trip by id, or the staff member's active trip"""
    return service.end_trip(
        trip_id=request.trip_id,
        staff_id=request.staff_id,
        latitude=request.latitude,
        longitude=request.longitude,
        address=request.address,
    )


@router.get("/staff-location", response_model=StaffLocationResponse)
def get_staff_location(
    staff_id: int = Query(..., alias="staffId", gt=0),
    service: TripService = Depends(get_trip_service)
):
    """Current location and status of a staff member"""
    return service.get_staff_location(staff_id)
