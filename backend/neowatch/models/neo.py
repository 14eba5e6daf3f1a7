from sqlalchemy import (
    JSON, BigInteger, Boolean, Column, Date, DateTime, Float, ForeignKey,
    Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow


class NeoObject(Base):
    """Per-object cache row. Keyed by the NeoWs id, overwritten on every fetch."""
    id = Column(String, primary_key=True, index=True)
    neo_reference_id = Column(String, nullable=True)
    name = Column(String, index=True, nullable=False)
    nasa_jpl_url = Column(String, nullable=True)
    absolute_magnitude = Column(Float, default=0.0)

    diameter_min_km = Column(Float, default=0.0)
    diameter_max_km = Column(Float, default=0.0)
    diameter_min_m = Column(Float, default=0.0)
    diameter_max_m = Column(Float, default=0.0)

    is_hazardous = Column(Boolean, default=False, index=True)
    is_sentry = Column(Boolean, default=False)
    sentry_data = Column(JSON, nullable=True)

    risk_score = Column(Integer, default=0)
    risk_level = Column(String, default="LOW")  # CRITICAL, HIGH, MEDIUM, LOW

    # Opaque pass-through, never rewritten
    orbital_data = Column(JSON, nullable=True)
    last_fetched = Column(DateTime, default=utcnow, index=True)

    close_approaches = relationship(
        "CloseApproach",
        back_populates="neo",
        order_by="CloseApproach.epoch_ms",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class CloseApproach(Base):
    id = Column(Integer, primary_key=True, index=True)
    neo_id = Column(String, ForeignKey("neo_object.id"), nullable=False, index=True)
    epoch_ms = Column(BigInteger, nullable=False)
    approach_date = Column(Date, nullable=False, index=True)
    approach_datetime = Column(String, nullable=True)

    velocity_kmh = Column(Float, default=0.0)
    velocity_kms = Column(Float, default=0.0)
    miss_distance_km = Column(Float, default=0.0)
    miss_distance_au = Column(Float, default=0.0)
    miss_distance_lunar = Column(Float, default=0.0)
    orbiting_body = Column(String, default="Earth")

    neo = relationship("NeoObject", back_populates="close_approaches")

    __table_args__ = (
        UniqueConstraint("neo_id", "epoch_ms", name="_neo_epoch_uc"),
    )
