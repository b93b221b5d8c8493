"""
Staff model. Field staff own trips, visits and daily performance rows.
"""
from sqlalchemy import Column, String, Float
from sqlalchemy.orm import relationship

from .base import BaseModel, SoftDeleteMixin


class Staff(SoftDeleteMixin, BaseModel):
    __tablename__ = 'staff'

    name = Column(String(255), nullable=False, index=True)
    department = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, unique=True)

    # Reimbursement rate in USD; unset means the agency default applies
    cost_per_mile = Column(Float, nullable=True)

    trips = relationship("Trip", back_populates="staff", lazy="dynamic")
    visits = relationship("Visit", back_populates="staff", lazy="dynamic")
    performance_stats = relationship("DailyPerformanceStat", back_populates="staff", lazy="dynamic")

    @property
    def role(self) -> str:
        return self.department or "Staff"

    def effective_cost_per_mile(self, default: float) -> float:
        """Rate used to price miles; falls back to the agency default."""
        if self.cost_per_mile is None:
            return default
        return float(self.cost_per_mile)
