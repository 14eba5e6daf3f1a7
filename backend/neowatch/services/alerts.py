"""
Alert rules and the notifications they produce.

All functions take an AsyncSession and are scoped by the owning user. A rule
or notification that exists but belongs to someone else is reported exactly
like a missing one (Unauthorized), so ids of other users never leak.
"""
import logging
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from neowatch.core.clock import Clock, utcnow
from neowatch.core.errors import DuplicateNotification, InvalidAlertKind, Unauthorized
from neowatch.models.alert import AlertKind, AlertRule
from neowatch.models.notification import Notification
from neowatch.schemas.neo import CelestialObject

logger = logging.getLogger(__name__)

THRESHOLD_KINDS = {AlertKind.DISTANCE, AlertKind.DIAMETER}


def parse_alert_kind(kind: Union[str, AlertKind]) -> AlertKind:
    try:
        return AlertKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in AlertKind)
        raise InvalidAlertKind(f"Invalid alert kind {kind!r}. Must be one of: {valid}") from None


async def create_alert_rule(
    db: AsyncSession,
    user_id: int,
    kind: Union[str, AlertKind],
    threshold: Optional[float] = None,
    is_active: bool = True,
    clock: Clock = utcnow,
) -> AlertRule:
    alert_kind = parse_alert_kind(kind)
    if alert_kind in THRESHOLD_KINDS:
        if threshold is None or threshold <= 0:
            raise ValueError(f"{alert_kind.value} alerts need a positive threshold")
    else:
        # flag kinds ignore the threshold
        threshold = 0.0

    now = clock()
    rule = AlertRule(
        user_id=user_id,
        kind=alert_kind,
        threshold=float(threshold),
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(rule)
    await db.commit()
    await db.refresh(rule)
    logger.info(f"User {user_id} created {alert_kind.value} alert {rule.id}")
    return rule


async def list_alert_rules(db: AsyncSession, user_id: int) -> List[AlertRule]:
    result = await db.execute(
        select(AlertRule).where(AlertRule.user_id == user_id).order_by(AlertRule.created_at.desc(), AlertRule.id.desc())
    )
    return list(result.scalars().all())


async def list_active_alert_rules(db: AsyncSession) -> List[AlertRule]:
    result = await db.execute(select(AlertRule).where(AlertRule.is_active.is_(True)).order_by(AlertRule.id))
    return list(result.scalars().all())


async def _owned_rule(db: AsyncSession, user_id: int, rule_id: int) -> AlertRule:
    rule = await db.get(AlertRule, rule_id)
    if rule is None or rule.user_id != user_id:
        raise Unauthorized(f"Alert {rule_id} not found")
    return rule


async def toggle_alert_rule(
    db: AsyncSession,
    user_id: int,
    rule_id: int,
    is_active: bool,
    clock: Clock = utcnow,
) -> AlertRule:
    rule = await _owned_rule(db, user_id, rule_id)
    rule.is_active = is_active
    rule.updated_at = clock()
    await db.commit()
    await db.refresh(rule)
    return rule


async def delete_alert_rule(db: AsyncSession, user_id: int, rule_id: int) -> None:
    rule = await _owned_rule(db, user_id, rule_id)
    await db.delete(rule)
    await db.commit()
    logger.info(f"User {user_id} deleted alert {rule_id}")


# ── Notifications ──────────────────────────────────────────────────────

async def notification_exists(
    db: AsyncSession, user_id: int, alert_id: int, neo_id: str, approach_date: date
) -> bool:
    result = await db.execute(
        select(Notification.id).where(
            Notification.user_id == user_id,
            Notification.alert_id == alert_id,
            Notification.neo_id == neo_id,
            Notification.approach_date == approach_date,
        ).limit(1)
    )
    return result.first() is not None


async def create_notification(
    db: AsyncSession,
    rule: AlertRule,
    obj: CelestialObject,
    message: str,
    approach_date: date,
    clock: Clock = utcnow,
) -> Notification:
    """Insert one notification; the unique constraint turns a lost race into DuplicateNotification."""
    notification = Notification(
        user_id=rule.user_id,
        alert_id=rule.id,
        neo_id=obj.id,
        neo_name=obj.name,
        approach_date=approach_date,
        message=message,
        risk_score=obj.risk_score,
        is_hazardous=obj.is_hazardous,
        triggered_at=clock(),
        is_read=False,
    )
    db.add(notification)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateNotification(
            f"Notification for alert {rule.id} / object {obj.id} on {approach_date} already exists"
        ) from e
    return notification


async def list_notifications(db: AsyncSession, user_id: int, limit: int = 50) -> List[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.triggered_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_notification_read(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise Unauthorized(f"Notification {notification_id} not found")
    notification.is_read = True
    await db.commit()
    return notification
