"""
Story model
"""
from sqlalchemy import Column, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class Story(Base, TimestampMixin):
    """A participant story: the move from situation A to situation B"""
    __tablename__ = "stories"

    id = uuid_pk()
    interview_id = Column(Uuid(as_uuid=True), ForeignKey("interviews.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    situation_a = Column(Text, nullable=False)  # current state
    situation_b = Column(Text, nullable=False)  # desired state
    cluster_id = Column(Integer, nullable=True)  # reserved

    interview = relationship("Interview", back_populates="stories")
    forces = relationship("Force", back_populates="story",
                          cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Story(id={self.id}, title={self.title})>"
