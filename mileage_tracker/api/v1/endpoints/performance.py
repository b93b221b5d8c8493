# api/v1/endpoints/performance.py
from fastapi import APIRouter, Depends, Query

from ....core.dependencies import get_performance_service
from ....schemas.analytics import StaffPerformanceStatsResponse
from ....services.performance_service import PerformanceService

router = APIRouter()


@router.get("/stats", response_model=StaffPerformanceStatsResponse)
def get_staff_performance_stats(
    staff_id: int = Query(..., alias="staffId", gt=0),
    service: PerformanceService = Depends(get_performance_service)
):
    """Today's stats, the weekly rollup and today's visits for a staff member"""
    return service.get_staff_stats(staff_id)
