"""
Custom exceptions for the mileage tracker.
Handles HTTP exceptions, validation errors, and business logic errors.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config.logging import get_logger

logger = get_logger(__name__)


class ErrorDetail(BaseModel):
    """Standard error detail structure"""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        field: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.field = field


# =============================================================================
# HTTP EXCEPTIONS
# =============================================================================

class NotFoundError(BaseCustomException):
    """Resource not found exception"""

    def __init__(self, resource: str, identifier: Any, message: str = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=message or f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND"
        )
        self.resource = resource


class ConflictError(BaseCustomException):
    """Resource conflict exception"""

    def __init__(self, message: str, error_code: str = "RESOURCE_CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message,
            error_code=error_code
        )


class InternalServerError(BaseCustomException):
    """Internal server error exception"""

    def __init__(self, message: str = "Internal server error occurred"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
            error_code="INTERNAL_SERVER_ERROR"
        )


class PersistenceError(InternalServerError):
    """Backing store read/write failure"""

    def __init__(self, operation: str = "database operation"):
        super().__init__(message=f"Failed to complete {operation}")
        self.error_code = "PERSISTENCE_ERROR"
        self.operation = operation


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(BaseCustomException):
    """Base validation error"""

    def __init__(self, message: str, field: str = None, errors: List[ErrorDetail] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=message,
            error_code="VALIDATION_ERROR",
            field=field
        )
        self.errors = errors or []


class InvalidCoordinatesError(ValidationError):
    """Invalid GPS coordinates error"""

    def __init__(self, latitude: float = None, longitude: float = None):
        if latitude is not None and longitude is not None:
            message = f"Invalid coordinates: latitude={latitude}, longitude={longitude}"
        else:
            message = "Invalid GPS coordinates provided"

        super().__init__(
            message=message,
            field="coordinates",
            errors=[
                ErrorDetail(
                    code="INVALID_COORDINATES",
                    message="Latitude must be between -90 and 90, longitude between -180 and 180",
                    field="coordinates"
                )
            ]
        )


class InvalidTimeRangeError(ValidationError):
    """Unsupported analytics time range"""

    def __init__(self, time_range: str, allowed: List[str]):
        super().__init__(
            message=f"Invalid time range: {time_range}",
            field="timeRange",
            errors=[
                ErrorDetail(
                    code="INVALID_TIME_RANGE",
                    message=f"Time range must be one of: {', '.join(allowed)}",
                    field="timeRange",
                    details={"provided_value": time_range}
                )
            ]
        )


# =============================================================================
# BUSINESS LOGIC ERRORS
# =============================================================================

class BusinessLogicError(BaseCustomException):
    """Base business logic error"""

    def __init__(self, message: str, error_code: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(
            status_code=status_code,
            detail=message,
            error_code=error_code
        )


class ActiveTripExistsError(BusinessLogicError):
    """Staff member already has an active trip"""

    def __init__(self, staff_id: int, trip_id: int):
        super().__init__(
            message=f"Staff {staff_id} already has an active trip ({trip_id}). End it before starting a new one.",
            error_code="ACTIVE_TRIP_EXISTS"
        )
        self.trip_id = trip_id


class TripNotActiveError(BusinessLogicError):
    """Trip is not in the active state"""

    def __init__(self, trip_id: int, current_status: str):
        super().__init__(
            message=f"Trip {trip_id} is not active. Current status: {current_status}",
            error_code="TRIP_NOT_ACTIVE"
        )


class VisitNotInProgressError(BusinessLogicError):
    """Visit is not in progress"""

    def __init__(self, visit_id: int, current_status: str):
        super().__init__(
            message=f"Visit {visit_id} is not in progress. Current status: {current_status}",
            error_code="VISIT_NOT_IN_PROGRESS"
        )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def format_error_response(error: BaseCustomException) -> Dict[str, Any]:
    """Format error response for consistent API responses"""
    response = {
        "error": True,
        "error_code": getattr(error, 'error_code', None) or 'UNKNOWN_ERROR',
        "message": error.detail,
        "status_code": error.status_code
    }

    if getattr(error, 'field', None):
        response["field"] = error.field

    if getattr(error, 'errors', None):
        response["errors"] = [err.model_dump() for err in error.errors]

    return response


async def custom_exception_handler(request: Request, exc: BaseCustomException) -> JSONResponse:
    """Render custom exceptions with the standard error body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc),
        headers=exc.headers
    )
