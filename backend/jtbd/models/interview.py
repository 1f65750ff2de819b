"""
Interview model
"""
from datetime import date

from sqlalchemy import (CheckConstraint, Column, Date, ForeignKey, Integer,
                        String, Text, Uuid)
from sqlalchemy.orm import relationship

from jtbd.core.database import Base
from jtbd.models.mixins import TimestampMixin, uuid_pk


class Interview(Base, TimestampMixin):
    """A recorded session with one participant"""
    __tablename__ = "interviews"
    __table_args__ = (
        CheckConstraint(
            "participant_age > 0 AND participant_age < 120",
            name="ck_interviews_participant_age",
        ),
    )

    id = uuid_pk()
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    participant_name = Column(String(255), nullable=False)
    participant_age = Column(Integer, nullable=True)
    participant_gender = Column(String(50), nullable=True)
    interview_date = Column(Date, nullable=False, default=date.today)
    context = Column(Text, nullable=False, default="")

    project = relationship("Project", back_populates="interviews")
    stories = relationship("Story", back_populates="interview",
                           cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Interview(id={self.id}, participant_name={self.participant_name})>"
