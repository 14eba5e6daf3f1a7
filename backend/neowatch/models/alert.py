from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow
import enum


class AlertKind(str, enum.Enum):
    DISTANCE = "distance"  # threshold in km, matches below
    DIAMETER = "diameter"  # threshold in m, matches above
    HAZARDOUS = "hazardous"
    SENTRY = "sentry"


class AlertRule(Base):
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    kind = Column(Enum(AlertKind), nullable=False)
    threshold = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
