from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from neowatch.api.deps import get_neo_service
from neowatch.core.clock import today
from neowatch.core.config import settings
from neowatch.core.errors import NeoNotFound, UpstreamUnavailable
from neowatch.schemas.neo import BrowsePage, CelestialObject
from neowatch.services import neo_stats
from neowatch.services.neo_service import NeoService

router = APIRouter()


@router.get("/feed")
async def read_feed(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    neo_service: NeoService = Depends(get_neo_service),
):
    """
    Asteroids approaching between start_date and end_date (inclusive).
    Defaults to today. The window may not exceed the upstream's 7-day limit.
    """
    start = start_date or today()
    end = end_date or start
    if end < start:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    if end - start > timedelta(days=settings.FEED_MAX_DAYS):
        raise HTTPException(status_code=400, detail=f"Date range cannot exceed {settings.FEED_MAX_DAYS} days")

    objects = await neo_service.get_objects_in_range(start, end_date)
    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "count": len(objects),
        "objects": objects,
    }


@router.get("/browse", response_model=BrowsePage)
async def browse(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    neo_service: NeoService = Depends(get_neo_service),
):
    try:
        return await neo_service.browse_objects(page, size)
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/stats")
async def read_stats(neo_service: NeoService = Depends(get_neo_service)):
    """Today's dashboard summary."""
    return await neo_stats.today_stats(neo_service)


@router.get("/trends")
async def read_trends(
    days: int = 7,
    neo_service: NeoService = Depends(get_neo_service),
):
    try:
        trends = await neo_stats.daily_trends(neo_service, days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"days": days, "trends": trends}


@router.get("/calendar")
async def read_calendar(
    month: Optional[str] = None,
    neo_service: NeoService = Depends(get_neo_service),
):
    """Approaches per day for a month (YYYY-MM), defaulting to the current one."""
    month = month or today().strftime("%Y-%m")
    try:
        return await neo_stats.month_calendar(neo_service, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{neo_id}", response_model=CelestialObject)
async def read_asteroid(neo_id: str, neo_service: NeoService = Depends(get_neo_service)):
    try:
        obj = await neo_service.get_object(neo_id)
    except NeoNotFound:
        raise HTTPException(status_code=404, detail=f"Asteroid {neo_id} not found")
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

    if obj is None:
        raise HTTPException(status_code=404, detail=f"Asteroid {neo_id} not available right now")
    return obj
