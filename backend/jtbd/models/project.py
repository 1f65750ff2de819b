"""
Research project model
"""
from sqlalchemy import CheckConstraint, Column, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from jtbd.core.constants import ProjectStatus
from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class Project(Base, TimestampMixin):
    """Root of the project → interview → story → force chain"""
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'completed', 'archived')",
            name="ck_projects_status",
        ),
    )

    id = uuid_pk()
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
                      nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ProjectStatus.ACTIVE.value)

    owner = relationship("Profile", lazy="joined")
    interviews = relationship("Interview", back_populates="project",
                              cascade="all, delete-orphan", passive_deletes=True)
    force_groups = relationship("ForceGroup", back_populates="project",
                                cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
