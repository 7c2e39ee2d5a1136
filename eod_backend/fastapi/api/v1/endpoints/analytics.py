"""
Analytics endpoint (admin only).
"""

import logging
from uuid import UUID
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eod_backend.fastapi.core.cache import TTLCache, generate_cache_key, get_analytics_cache
from eod_backend.fastapi.dependencies.database import get_sync_db
from eod_backend.fastapi.models.user import User
from eod_backend.fastapi.schemas.analytics import AnalyticsResponse
from eod_backend.fastapi.crud.analytics import get_period_analytics
from eod_backend.security.dependencies import RequireAdmin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=AnalyticsResponse, summary="Period Analytics")
async def period_analytics(
    *,
    db: Session = Depends(get_sync_db),
    current_admin: User = RequireAdmin,
    cache: TTLCache = Depends(get_analytics_cache),
    start_date: date = Query(..., description="First day of the period"),
    end_date: date = Query(..., description="Last day of the period"),
    venue_id: Optional[UUID] = Query(None, description="Restrict to one venue")
) -> AnalyticsResponse:
    """
    Totals, averages per day with sales, report counts and a zero-filled
    daily series for the period. Results are cached for five minutes and
    dropped whenever a report changes.
    """
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date"
        )

    cache_key = generate_cache_key("analytics", {
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "venue_id": str(venue_id) if venue_id else "all",
    })
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug("Analytics cache hit: %s", cache_key)
        return cached.model_copy(update={"cached": True})

    try:
        result = AnalyticsResponse(**get_period_analytics(db, start_date, end_date, venue_id))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch analytics data: {str(e)}"
        )

    cache.cleanup()
    cache.set(cache_key, result)
    return result
