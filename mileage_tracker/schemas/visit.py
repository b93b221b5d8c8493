from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class StartVisitRequest(CamelModel):
    staff_id: int = Field(..., gt=0)
    trip_id: Optional[int] = Field(None, gt=0)
    patient_name: Optional[str] = Field(None, max_length=255)
    patient_address: Optional[str] = Field(None, max_length=500)
    visit_type: Optional[str] = Field(None, max_length=50)
    scheduled_time: Optional[datetime] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class StartVisitResponse(CamelModel):
    id: int
    trip_id: Optional[int] = None
    patient_name: Optional[str] = None
    start_time: datetime
    drive_time: int  # minutes, estimated
    distance: float  # miles from trip start


class EndVisitRequest(CamelModel):
    visit_id: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=5000)


class EndVisitResponse(CamelModel):
    id: int
    duration: int  # minutes
    end_time: datetime


class VisitSummary(CamelModel):
    id: int
    patient_name: Optional[str] = None
    patient_address: Optional[str] = None
    visit_type: Optional[str] = None
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int  # minutes; elapsed so far for visits in progress
    drive_time_to_visit: int
    distance_to_visit: float
