from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, LocationSchema


class StartTripRequest(CamelModel):
    staff_id: int = Field(..., gt=0)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)


class StartTripResponse(CamelModel):
    trip_id: int
    start_time: datetime


class RoutePointRequest(CamelModel):
    trip_id: int = Field(..., gt=0)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = None
    speed: Optional[float] = Field(None, ge=0)  # mph


class RoutePointResponse(CamelModel):
    trip_id: int
    route_point_count: int


class EndTripRequest(CamelModel):
    trip_id: Optional[int] = Field(None, gt=0)
    staff_id: Optional[int] = Field(None, gt=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)


class EndTripResponse(CamelModel):
    trip_id: int
    total_drive_time: int  # minutes
    total_distance: float  # miles
    cost_per_mile: float
    total_cost: float


class RoutePoint(CamelModel):
    lat: float
    lng: float
    timestamp: Optional[str] = None
    speed: Optional[float] = None


class ActiveTripInfo(CamelModel):
    id: int
    start_time: datetime
    start_location: Optional[LocationSchema] = None
    route_points: List[RoutePoint] = []


class CurrentLocation(CamelModel):
    latitude: float
    longitude: float
    speed: Optional[float] = None
    timestamp: Optional[datetime] = None
    is_recent: bool
    age_minutes: Optional[int] = None


class CurrentVisitInfo(CamelModel):
    id: int
    patient_name: Optional[str] = None
    patient_address: Optional[str] = None
    visit_location: Optional[LocationSchema] = None
    start_time: datetime


class StaffLocationStaff(CamelModel):
    id: int
    name: str
    department: Optional[str] = None


class StaffLocationResponse(CamelModel):
    staff: StaffLocationStaff
    status: str  # on_visit | driving | active | offline
    has_active_trip: bool
    active_trip: Optional[ActiveTripInfo] = None
    current_location: Optional[CurrentLocation] = None
    current_visit: Optional[CurrentVisitInfo] = None
