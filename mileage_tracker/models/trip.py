"""
Trip model for staff driving sessions.
A trip is created active when a staff member starts driving and is completed
exactly once; completed trips are never reopened.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Index, JSON, text
from sqlalchemy.orm import relationship

from .base import BaseModel


class TripStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Trip(BaseModel):
    __tablename__ = 'staff_trips'

    staff_id = Column(Integer, ForeignKey('staff.id'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=TripStatus.ACTIVE.value, index=True)

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)

    # {"lat": float, "lng": float, "address": str | None}
    start_location = Column(JSON, nullable=True)
    end_location = Column(JSON, nullable=True)

    # ordered [{"lat", "lng", "timestamp", "speed"}]
    route_points = Column(JSON, nullable=False, default=list)

    total_distance = Column(Float, nullable=True)  # miles
    total_drive_time = Column(Integer, nullable=True)  # minutes

    staff = relationship("Staff", back_populates="trips")
    visits = relationship("Visit", back_populates="trip", lazy="dynamic")

    __table_args__ = (
        Index('idx_trip_staff_status', 'staff_id', 'status', 'start_time'),
        # one active trip per staff member
        Index(
            'uq_trip_active_staff', 'staff_id',
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == TripStatus.ACTIVE.value

    @property
    def points(self) -> List[Dict[str, Any]]:
        return list(self.route_points or [])

    @property
    def last_point(self) -> Optional[Dict[str, Any]]:
        points = self.points
        return points[-1] if points else None
