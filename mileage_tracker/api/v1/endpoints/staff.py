# api/v1/endpoints/staff.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ....config.logging import get_logger
from ....core.database import get_db
from ....core.exceptions import ConflictError, NotFoundError
from ....repositories.base import persistence_guard
from ....repositories.staff_repo import staff_repository
from ....schemas.staff import StaffCreate, StaffResponse, StaffUpdate

logger = get_logger(__name__)

router = APIRouter()


def _ensure_email_free(db: Session, email: Optional[str], staff_id: Optional[int] = None) -> None:
    if staff_repository.email_taken(db, email, exclude_id=staff_id):
        raise ConflictError(f"Staff with email {email} already exists", error_code="STAFF_EMAIL_EXISTS")


def _write_conflict(db: Session, error: IntegrityError, email: Optional[str], staff_id: Optional[int] = None) -> None:
    """Re-raise an integrity failure as a conflict when a concurrent write took the email."""
    db.rollback()
    _ensure_email_free(db, email, staff_id)
    raise error


@router.get("", response_model=List[StaffResponse])
def list_staff(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Active staff members ordered by name"""
    with persistence_guard(db, "list staff"):
        return staff_repository.get_multi(
            db, skip=skip, limit=limit, filters={"is_active": True}, sort_by="name"
        )


@router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
def create_staff(staff_in: StaffCreate, db: Session = Depends(get_db)):
    with persistence_guard(db, "create staff"):
        _ensure_email_free(db, staff_in.email)
        try:
            staff = staff_repository.create(db, obj_in=staff_in)
        except IntegrityError as e:
            _write_conflict(db, e, staff_in.email)
    logger.info(f"Staff {staff.id} created", extra={"staff_id": staff.id})
    return staff


@router.get("/{staff_id}", response_model=StaffResponse)
def get_staff(staff_id: int, db: Session = Depends(get_db)):
    with persistence_guard(db, "get staff", staff_id=staff_id):
        staff = staff_repository.get(db, staff_id)
    if not staff:
        raise NotFoundError("Staff", staff_id)
    return staff


@router.patch("/{staff_id}", response_model=StaffResponse)
def update_staff(staff_id: int, staff_in: StaffUpdate, db: Session = Depends(get_db)):
    """Update staff details; a new cost per mile applies from the next recorded activity"""
    with persistence_guard(db, "update staff", staff_id=staff_id):
        staff = staff_repository.get(db, staff_id)
        if not staff:
            raise NotFoundError("Staff", staff_id)
        new_email = staff_in.email if "email" in staff_in.model_fields_set else None
        _ensure_email_free(db, new_email, staff_id)
        try:
            return staff_repository.update(db, db_obj=staff, obj_in=staff_in)
        except IntegrityError as e:
            _write_conflict(db, e, new_email, staff_id)
