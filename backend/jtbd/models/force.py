"""
Force model
"""
from sqlalchemy import CheckConstraint, Column, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class Force(Base, TimestampMixin):
    """A single motivational force captured from a story"""
    __tablename__ = "forces"
    __table_args__ = (
        CheckConstraint(
            "type IN ('push', 'pull', 'habit', 'anxiety')",
            name="ck_forces_type",
        ),
    )

    id = uuid_pk()
    story_id = Column(Uuid(as_uuid=True), ForeignKey("stories.id", ondelete="CASCADE"),
                      nullable=False, index=True)
    type = Column(String(10), nullable=False)
    description = Column(Text, nullable=False)
    group_id = Column(Uuid(as_uuid=True), ForeignKey("force_groups.id", ondelete="SET NULL"),
                      nullable=True, index=True)

    story = relationship("Story", back_populates="forces")

    def __repr__(self):
        return f"<Force(id={self.id}, type={self.type}, group_id={self.group_id})>"
