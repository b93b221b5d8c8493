from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.staff import Staff
from ..schemas.staff import StaffCreate, StaffUpdate
from .base import CRUDBase


class StaffRepository(CRUDBase[Staff, StaffCreate, StaffUpdate]):
    def __init__(self):
        super().__init__(Staff)

    def get_active_staff(self, db: Session, staff_id: Optional[int] = None) -> List[Staff]:
        """Active staff members ordered by name, optionally a single one."""
        query = db.query(self.model).filter(self.model.is_active.is_(True))
        if staff_id is not None:
            query = query.filter(self.model.id == staff_id)
        return query.order_by(self.model.name, self.model.id).all()

    def email_taken(self, db: Session, email: Optional[str], exclude_id: Optional[int] = None) -> bool:
        """Whether another staff member already uses ``email``."""
        if email is None:
            return False
        query = db.query(self.model.id).filter(self.model.email == email)
        if exclude_id is not None:
            query = query.filter(self.model.id != exclude_id)
        return query.first() is not None

    def get_cost_per_mile(self, db: Session, staff_id: int, default: float) -> float:
        """Current reimbursement rate for a staff member."""
        rate = db.query(self.model.cost_per_mile).filter(self.model.id == staff_id).scalar()
        return default if rate is None else float(rate)


staff_repository = StaffRepository()
