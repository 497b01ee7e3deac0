"""Analytics hook route."""

from fastapi import APIRouter

from drift.schemas.analytics import AnalyticsEventCreate, AnalyticsEventResult
from drift.schemas.common import ApiResponse
from drift.services.analytics import track


router = APIRouter(prefix="/analytics")


@router.post("/events", response_model=ApiResponse[AnalyticsEventResult])
def record_event(payload: AnalyticsEventCreate) -> ApiResponse[AnalyticsEventResult]:
    """Log a UI event when analytics are enabled; inert otherwise."""

    emitted = track(payload.event, payload.model_dump(exclude={"event"}))
    return ApiResponse(data=AnalyticsEventResult(emitted=emitted))
