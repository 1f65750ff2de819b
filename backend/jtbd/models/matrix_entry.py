"""
Story/group validation matrix model
"""
from sqlalchemy import Boolean, Column, ForeignKey, UniqueConstraint, Uuid

from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class MatrixEntry(Base, TimestampMixin):
    """Whether a story matches a force group; NULL means skipped"""
    __tablename__ = "story_group_matrix"
    __table_args__ = (
        UniqueConstraint("story_id", "group_id", name="uq_story_group_matrix_pair"),
    )

    id = uuid_pk()
    story_id = Column(Uuid(as_uuid=True), ForeignKey("stories.id", ondelete="CASCADE"),
                      nullable=False, index=True)
    group_id = Column(Uuid(as_uuid=True), ForeignKey("force_groups.id", ondelete="CASCADE"),
                      nullable=False, index=True)
    matches = Column(Boolean, nullable=True)

    def __repr__(self):
        return f"<MatrixEntry(story_id={self.story_id}, group_id={self.group_id}, matches={self.matches})>"
