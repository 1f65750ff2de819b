"""
User and Session models for authentication
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from jtbd.core.database import Base
from jtbd.models.mixins import utcnow, uuid_pk


class User(Base):
    """Authenticated principal"""
    __tablename__ = "users"

    id = uuid_pk()
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    # Sign-up metadata: {"full_name": ..., "name": ...}
    user_metadata = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan",
                            passive_deletes=True)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class Session(Base):
    """Session model for user sessions"""
    __tablename__ = "sessions"

    id = uuid_pk()
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_activity = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<Session(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"
