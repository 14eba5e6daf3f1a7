from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from neowatch.models.alert import AlertKind


class AlertRuleCreate(BaseModel):
    kind: str
    threshold: Optional[float] = None
    is_active: bool = True


class AlertRuleToggle(BaseModel):
    is_active: bool


class AlertRuleOut(BaseModel):
    id: int
    user_id: int
    kind: AlertKind
    threshold: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: int
    alert_id: int
    neo_id: str
    neo_name: str
    approach_date: date
    message: str
    risk_score: int
    is_hazardous: bool
    triggered_at: datetime
    is_read: bool

    model_config = ConfigDict(from_attributes=True)
