"""
Profile model mirroring an authenticated principal
"""
from sqlalchemy import Column, ForeignKey, String, Uuid

from jtbd.core.constants import DEFAULT_ROLE
from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin


class Profile(Base, TimestampMixin):
    """One-to-one with a User; removed only when the user is deleted"""
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=DEFAULT_ROLE, server_default=DEFAULT_ROLE)

    def __repr__(self):
        return f"<Profile(id={self.id}, full_name={self.full_name})>"
