# api/v1/endpoints/analytics.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ....core.dependencies import get_analytics_service
from ....schemas.analytics import GPSAnalyticsResponse
from ....services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("", response_model=GPSAnalyticsResponse)
def get_gps_analytics(
    time_range: str = Query("7d", alias="timeRange"),
    staff_id: Optional[int] = Query(None, alias="staffId", gt=0),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Mileage, cost and efficiency over the selected window, compared with the one before"""
    return service.get_gps_analytics(time_range=time_range, staff_id=staff_id)
