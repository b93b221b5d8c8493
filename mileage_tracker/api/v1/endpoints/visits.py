# api/v1/endpoints/visits.py
from fastapi import APIRouter, Depends, status

from ....core.dependencies import get_visit_service
from ....schemas.visit import EndVisitRequest, EndVisitResponse, StartVisitRequest, StartVisitResponse
from ....services.visit_service import VisitService

router = APIRouter()


@router.post("/start", response_model=StartVisitResponse, status_code=status.HTTP_201_CREATED)
def start_visit(
    request: StartVisitRequest,
    service: VisitService = Depends(get_visit_service)
):
    """Start a patient visit on the staff member's active trip"""
    return service.start_visit(
        staff_id=request.staff_id,
        trip_id=request.trip_id,
        patient_name=request.patient_name,
        patient_address=request.patient_address,
        visit_type=request.visit_type,
        scheduled_time=request.scheduled_time,
        latitude=request.latitude,
        longitude=request.longitude,
    )


@router.post("/end", response_model=EndVisitResponse)
def end_visit(
    request: EndVisitRequest,
    service: VisitService = Depends(get_visit_service)
):
    return service.end_visit(visit_id=request.visit_id, notes=request.notes)
