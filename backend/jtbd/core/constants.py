"""
Domain enumerations and constants shared by models, schemas and the client
"""
from enum import Enum

DEFAULT_ROLE = "researcher"
DEFAULT_GROUP_COLOR = "#3B82F6"

MIN_PARTICIPANT_AGE = 1
MAX_PARTICIPANT_AGE = 119


class ProjectStatus(str, Enum):
    """Project status enumeration"""
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ForceType(str, Enum):
    """Force type enumeration"""
    PUSH = "push"
    PULL = "pull"
    HABIT = "habit"
    ANXIETY = "anxiety"


class ForceGroupType(str, Enum):
    """Only push and pull forces are clustered"""
    PUSH = "push"
    PULL = "pull"


class Collection(str, Enum):
    """Named collections exposed by the service"""
    PROFILES = "profiles"
    PROJECTS = "projects"
    INTERVIEWS = "interviews"
    STORIES = "stories"
    FORCES = "forces"
    FORCE_GROUPS = "force_groups"
    MATRIX = "story_group_matrix"
