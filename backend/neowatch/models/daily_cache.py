from sqlalchemy import JSON, Column, Date, DateTime, Integer
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow


class DailyCache(Base):
    """Aggregate feed for one calendar day, written only by single-day feed fetches."""
    date = Column(Date, primary_key=True)
    objects = Column(JSON, nullable=False, default=list)
    count = Column(Integer, default=0)
    # {"count", "hazardous", "closest_km", "fastest_kmh"}
    stats = Column(JSON, nullable=False, default=dict)
    last_updated = Column(DateTime, default=utcnow, nullable=False)
