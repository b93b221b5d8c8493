"""
Base SQLAlchemy model with common fields and utilities.
"""
from sqlalchemy import Column, Integer, DateTime, String, Boolean
from sqlalchemy.sql import func
import uuid

from ..core.database import Base


class BaseModel(Base):
    """
    Abstract base model with common fields and methods for all models.
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # UUID for external references
    uuid = Column(String(36), unique=True, index=True, default=lambda: str(uuid.uuid4()))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"


class SoftDeleteMixin:
    """Mixin for records that are deactivated rather than deleted."""
    is_active = Column(Boolean, default=True, nullable=False)
