"""
Force group model
"""
from sqlalchemy import (Boolean, CheckConstraint, Column, ForeignKey, Integer,
                        String, Uuid)
from sqlalchemy.orm import relationship

from jtbd.core.constants import DEFAULT_GROUP_COLOR
from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class ForceGroup(Base, TimestampMixin):
    """A researcher-defined thematic cluster of forces"""
    __tablename__ = "force_groups"
    __table_args__ = (
        CheckConstraint("type IN ('push', 'pull')", name="ck_force_groups_type"),
    )

    id = uuid_pk()
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(10), nullable=False)
    color = Column(String(20), nullable=False, default=DEFAULT_GROUP_COLOR)
    is_leftover = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)

    project = relationship("Project", back_populates="force_groups")

    def __repr__(self):
        return f"<ForceGroup(id={self.id}, name={self.name}, type={self.type})>"
