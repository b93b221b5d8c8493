from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import and_, desc, update
from sqlalchemy.orm import Session

from ..models.trip import Trip, TripStatus
from ..config.logging import log_database_operation
from .base import CRUDBase


class TripRepository(CRUDBase[Trip, Any, Any]):
    def __init__(self):
        super().__init__(Trip)

    def get_active_for_staff(self, db: Session, staff_id: int) -> Optional[Trip]:
        """Most recently started active trip for a staff member"""
        return (
            db.query(self.model)
            .filter(and_(
                self.model.staff_id == staff_id,
                self.model.status == TripStatus.ACTIVE.value
            ))
            .order_by(desc(self.model.start_time), desc(self.model.id))
            .first()
        )

    def create_active(
        self,
        db: Session,
        *,
        staff_id: int,
        start_time: datetime,
        start_location: Optional[Dict[str, Any]]
    ) -> Trip:
        trip = self.model(
            staff_id=staff_id,
            status=TripStatus.ACTIVE.value,
            start_time=start_time,
            start_location=start_location,
            route_points=[],
        )
        db.add(trip)
        db.commit()
        db.refresh(trip)
        log_database_operation("insert", self.model.__tablename__, row_count=1)
        return trip

    def append_route_point(self, db: Session, trip: Trip, point: Dict[str, Any]) -> Trip:
        # JSON columns only track reassignment, not in-place mutation
        trip.route_points = trip.points + [point]
        db.add(trip)
        db.commit()
        db.refresh(trip)
        return trip

    def complete(
        self,
        db: Session,
        *,
        trip_id: int,
        end_time: datetime,
        end_location: Optional[Dict[str, Any]],
        total_distance: float,
        total_drive_time: int
    ) -> bool:
        """
        Mark an active trip completed. Returns False when the trip was no
        longer active, so a trip can only be completed once.
        """
        result = db.execute(
            update(self.model)
            .where(and_(
                self.model.id == trip_id,
                self.model.status == TripStatus.ACTIVE.value
            ))
            .values(
                end_time=end_time,
                end_location=end_location,
                total_distance=total_distance,
                total_drive_time=total_drive_time,
                status=TripStatus.COMPLETED.value,
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        log_database_operation("complete", self.model.__tablename__, row_count=result.rowcount)
        return result.rowcount == 1


trip_repository = TripRepository()
