from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from neowatch.api.endpoints.auth import get_current_user
from neowatch.core.errors import InvalidAlertKind, Unauthorized
from neowatch.db.session import get_db
from neowatch.models.user import User
from neowatch.schemas.alert import AlertRuleCreate, AlertRuleOut, AlertRuleToggle
from neowatch.services import alerts as alert_service

router = APIRouter()


@router.get("", response_model=List[AlertRuleOut])
async def read_alerts(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await alert_service.list_alert_rules(db, user.id)


@router.post("", response_model=AlertRuleOut, status_code=201)
async def create_alert(
    req: AlertRuleCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an alert rule.
    distance: threshold in km; diameter: threshold in meters; hazardous and sentry take no threshold.
    """
    try:
        return await alert_service.create_alert_rule(db, user.id, req.kind, req.threshold, req.is_active)
    except (InvalidAlertKind, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{alert_id}", response_model=AlertRuleOut)
async def toggle_alert(
    alert_id: int,
    req: AlertRuleToggle,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await alert_service.toggle_alert_rule(db, user.id, alert_id, req.is_active)
    except Unauthorized as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{alert_id}")
async def delete_alert(
    alert_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await alert_service.delete_alert_rule(db, user.id, alert_id)
    except Unauthorized as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Alert deleted"}
