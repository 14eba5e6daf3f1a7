from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow


class WatchlistEntry(Base):
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    neo_id = Column(String, nullable=False)
    # Snapshot so the entry still renders once the object leaves the cache window
    stored_data = Column(JSON, default=dict)
    added_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "neo_id", name="_watch_user_neo_uc"),
    )
