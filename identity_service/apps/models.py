"""
App (tenant) model.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, SmallInteger, String

from identity_service.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class App(Base):
    """Tenant owning a set of users."""
    __tablename__ = "apps"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    status = Column(SmallInteger, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
