from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from neowatch.api.endpoints.auth import get_current_user
from neowatch.core.errors import Unauthorized
from neowatch.db.session import get_db
from neowatch.models.user import User
from neowatch.schemas.alert import NotificationOut
from neowatch.services import alerts as alert_service

router = APIRouter()


@router.get("", response_model=List[NotificationOut])
async def read_notifications(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest first."""
    return await alert_service.list_notifications(db, user.id, limit)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await alert_service.mark_notification_read(db, user.id, notification_id)
    except Unauthorized as e:
        raise HTTPException(status_code=404, detail=str(e))
