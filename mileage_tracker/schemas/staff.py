from typing import Optional

from pydantic import Field, field_validator

from .common import CamelModel


class StaffBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    cost_per_mile: Optional[float] = Field(None, ge=0)


class StaffCreate(StaffBase):
    is_active: bool = True


class StaffUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    cost_per_mile: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("name", "is_active")
    @classmethod
    def not_null(cls, value):
        # may be omitted, but not cleared
        if value is None:
            raise ValueError("may not be null")
        return value


class StaffResponse(StaffBase):
    id: int
    role: str
    is_active: bool


class StaffSummary(CamelModel):
    id: int
    name: str
    role: str
