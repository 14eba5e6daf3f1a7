from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, UniqueConstraint
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow


class Notification(Base):
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    alert_id = Column(Integer, nullable=False, index=True)
    neo_id = Column(String, nullable=False)
    neo_name = Column(String, nullable=False)
    approach_date = Column(Date, nullable=False)
    message = Column(String, nullable=False)
    risk_score = Column(Integer, default=0)
    is_hazardous = Column(Boolean, default=False)
    triggered_at = Column(DateTime, default=utcnow, index=True)
    is_read = Column(Boolean, default=False)

    # At most one notification per alert, object and day
    __table_args__ = (
        UniqueConstraint("user_id", "alert_id", "neo_id", "approach_date", name="_notification_once_uc"),
    )
