from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import and_, desc, update
from sqlalchemy.orm import Session

from ..models.visit import Visit, VisitStatus
from .base import CRUDBase


class VisitRepository(CRUDBase[Visit, Any, Any]):
    def __init__(self):
        super().__init__(Visit)

    def get_in_progress_for_staff(self, db: Session, staff_id: int) -> Optional[Visit]:
        return (
            db.query(self.model)
            .filter(and_(
                self.model.staff_id == staff_id,
                self.model.status == VisitStatus.IN_PROGRESS.value
            ))
            .order_by(desc(self.model.start_time), desc(self.model.id))
            .first()
        )

    def get_for_staff_between(
        self,
        db: Session,
        staff_id: int,
        start_time: datetime,
        end_time: datetime
    ) -> List[Visit]:
        """Visits started in [start_time, end_time), oldest first"""
        return (
            db.query(self.model)
            .filter(and_(
                self.model.staff_id == staff_id,
                self.model.start_time >= start_time,
                self.model.start_time < end_time
            ))
            .order_by(self.model.start_time, self.model.id)
            .all()
        )

    def complete(
        self,
        db: Session,
        *,
        visit_id: int,
        end_time: datetime,
        duration: int,
        notes: Optional[str]
    ) -> bool:
        """Mark an in-progress visit completed; False if it already was."""
        result = db.execute(
            update(self.model)
            .where(and_(
                self.model.id == visit_id,
                self.model.status == VisitStatus.IN_PROGRESS.value
            ))
            .values(
                end_time=end_time,
                duration=duration,
                notes=notes,
                status=VisitStatus.COMPLETED.value,
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1


visit_repository = VisitRepository()
