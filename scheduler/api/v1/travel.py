"""
GET /api/travel-time — Placeholder travel estimate between two addresses.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from scheduler.core.auth import RequestContext, get_request_context
from scheduler.services.travel import (
    DEFAULT_BUFFER_MINUTES,
    DistanceEstimator,
    calculate_start_time,
    extract_postcode,
    get_distance_estimator,
)
from scheduler_shared.schemas.resources import TravelEstimateResponse

router = APIRouter()


@router.get("", response_model=TravelEstimateResponse)
async def travel_time(
    from_: Optional[str] = Query(default=None, alias="from"),
    to: Optional[str] = Query(default=None),
    start_time: Optional[str] = Query(default=None, alias="startTime", pattern=r"^\d{1,2}:\d{2}$"),
    buffer: int = Query(default=DEFAULT_BUFFER_MINUTES, ge=0, le=240),
    ctx: RequestContext = Depends(get_request_context),
    estimator: DistanceEstimator = Depends(get_distance_estimator),
):
    from_postcode = extract_postcode(from_)
    to_postcode = extract_postcode(to)
    return TravelEstimateResponse(
        from_postcode=from_postcode,
        to_postcode=to_postcode,
        travel_minutes=estimator.travel_minutes(from_postcode, to_postcode),
        start_time=(
            calculate_start_time(start_time, from_, to, buffer, estimator) if start_time else None
        ),
    )
