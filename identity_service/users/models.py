"""
User model.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, SmallInteger, String
from sqlalchemy.orm import relationship

from identity_service.apps.models import utcnow
from identity_service.database import Base


class User(Base):
    """User account belonging to an app."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    app_id = Column(Integer, ForeignKey("apps.id", ondelete="CASCADE"), index=True, nullable=False)
    firstname = Column(String, nullable=False)
    lastname = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    # bcrypt digest, never returned to clients
    password = Column(String, nullable=False)
    status = Column(SmallInteger, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    app = relationship("App", lazy="selectin")

    @property
    def app_name(self) -> str:
        return self.app.name if self.app is not None else None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} app_id={self.app_id}>"
