"""
Patient visit model. A visit is started while a trip is active and its
duration feeds the staff member's daily visit time when it ends.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Index, JSON, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class VisitStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Visit(BaseModel):
    __tablename__ = 'staff_visits'

    staff_id = Column(Integer, ForeignKey('staff.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('staff_trips.id'), nullable=True, index=True)

    patient_name = Column(String(255), nullable=True)
    patient_address = Column(String(500), nullable=True)
    visit_type = Column(String(50), nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)
    visit_location = Column(JSON, nullable=True)

    # Estimated from the trip start location
    drive_time_to_visit = Column(Integer, nullable=False, default=0)  # minutes
    distance_to_visit = Column(Float, nullable=False, default=0.0)  # miles

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=VisitStatus.IN_PROGRESS.value)

    staff = relationship("Staff", back_populates="visits")
    trip = relationship("Trip", back_populates="visits")

    __table_args__ = (
        Index('idx_visit_staff_start', 'staff_id', 'start_time'),
    )

    @property
    def in_progress(self) -> bool:
        return self.status == VisitStatus.IN_PROGRESS.value
