from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from neowatch.api.deps import get_watchlist_service
from neowatch.api.endpoints.auth import get_current_user
from neowatch.core.errors import AlreadyWatched, NotWatched
from neowatch.models.user import User
from neowatch.services.watchlist import WatchlistService

router = APIRouter()


@router.get("")
async def read_watchlist(
    user: User = Depends(get_current_user),
    watchlist: WatchlistService = Depends(get_watchlist_service),
):
    items = await watchlist.list(user.id)
    return {"count": len(items), "items": items}


@router.post("/{neo_id}", status_code=201)
async def add_to_watchlist(
    neo_id: str,
    snapshot: Optional[Dict[str, Any]] = Body(None),
    user: User = Depends(get_current_user),
    watchlist: WatchlistService = Depends(get_watchlist_service),
):
    """Watch an asteroid. The optional body is stored as a snapshot shown until fresh data exists."""
    try:
        return await watchlist.add(user.id, neo_id, snapshot)
    except AlreadyWatched as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{neo_id}")
async def remove_from_watchlist(
    neo_id: str,
    user: User = Depends(get_current_user),
    watchlist: WatchlistService = Depends(get_watchlist_service),
):
    try:
        await watchlist.remove(user.id, neo_id)
    except NotWatched as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": f"{neo_id} removed from watchlist"}
