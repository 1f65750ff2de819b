"""
SQLAlchemy models
"""
from jtbd.core.database import Base
# Import all models here so Alembic can detect them
from jtbd.models.force import Force  # noqa: F401
from jtbd.models.force_group import ForceGroup  # noqa: F401
from jtbd.models.interview import Interview  # noqa: F401
from jtbd.models.matrix_entry import MatrixEntry  # noqa: F401
from jtbd.models.profile import Profile  # noqa: F401
from jtbd.models.project import Project  # noqa: F401
from jtbd.models.story import Story  # noqa: F401
from jtbd.models.user import Session, User  # noqa: F401

__all__ = [
    "Base",
    # Authentication
    "User",
    "Session",
    # Research data
    "Profile",
    "Project",
    "Interview",
    "Story",
    "Force",
    "ForceGroup",
    "MatrixEntry",
]
