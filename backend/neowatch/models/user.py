"""
User Model

Stores user accounts. Only used to identify the caller of alert,
notification and watchlist endpoints.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from neowatch.db.base_class import Base
from neowatch.core.clock import utcnow


class User(Base):
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    name = Column(String, default="")

    # Account status
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    last_login = Column(DateTime, nullable=True)
