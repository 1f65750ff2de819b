"""
Wire schemas for the named collections

The same models validate requests on the service and inputs in the client, so
a value the service would reject is caught before it leaves the client.
Create/Update models forbid unknown fields: identifiers and parent keys cannot
be smuggled into an update.
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from jtbd.core.constants import (DEFAULT_GROUP_COLOR, DEFAULT_ROLE,
                                 MAX_PARTICIPANT_AGE, MIN_PARTICIPANT_AGE,
                                 ForceGroupType, ForceType, ProjectStatus)


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, use_enum_values=True)


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileCreate(_Input):
    id: UUID
    email: str = Field(..., max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)


class ProfileUpdate(_Input):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)


class ProfileRead(_Record):
    email: str
    full_name: str
    role: str = DEFAULT_ROLE


class ProfileSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class ProjectCreate(_Input):
    id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(_Input):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectRead(_Record):
    name: str
    description: str
    owner_id: UUID
    status: ProjectStatus
    owner: Optional[ProfileSummary] = None


# ---------------------------------------------------------------------------
# Interviews
# ---------------------------------------------------------------------------

class InterviewCreate(_Input):
    id: Optional[UUID] = None
    project_id: UUID
    participant_name: str = Field(..., min_length=1, max_length=255)
    participant_age: Optional[int] = Field(None, ge=MIN_PARTICIPANT_AGE, le=MAX_PARTICIPANT_AGE)
    participant_gender: Optional[str] = Field(None, max_length=50)
    interview_date: Optional[date] = None
    context: str = ""


class InterviewUpdate(_Input):
    participant_name: Optional[str] = Field(None, min_length=1, max_length=255)
    participant_age: Optional[int] = Field(None, ge=MIN_PARTICIPANT_AGE, le=MAX_PARTICIPANT_AGE)
    participant_gender: Optional[str] = Field(None, max_length=50)
    interview_date: Optional[date] = None
    context: Optional[str] = None


class InterviewRead(_Record):
    project_id: UUID
    participant_name: str
    participant_age: Optional[int] = None
    participant_gender: Optional[str] = None
    interview_date: date
    context: str


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------

class StoryCreate(_Input):
    id: Optional[UUID] = None
    interview_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    situation_a: str = Field(..., min_length=1)
    situation_b: str = Field(..., min_length=1)
    cluster_id: Optional[int] = None


class StoryUpdate(_Input):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    situation_a: Optional[str] = Field(None, min_length=1)
    situation_b: Optional[str] = Field(None, min_length=1)
    cluster_id: Optional[int] = None


class StoryRead(_Record):
    interview_id: UUID
    title: str
    description: str
    situation_a: str
    situation_b: str
    cluster_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Forces
# ---------------------------------------------------------------------------

class ForceCreate(_Input):
    id: Optional[UUID] = None
    story_id: UUID
    type: ForceType
    description: str = Field(..., min_length=1)
    group_id: Optional[UUID] = None


class ForceUpdate(_Input):
    type: Optional[ForceType] = None
    description: Optional[str] = Field(None, min_length=1)
    group_id: Optional[UUID] = None


class ForceRead(_Record):
    story_id: UUID
    type: ForceType
    description: str
    group_id: Optional[UUID] = None


# ---------------------------------------------------------------------------
# Force groups
# ---------------------------------------------------------------------------

class ForceGroupCreate(_Input):
    id: Optional[UUID] = None
    project_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    type: ForceGroupType
    color: str = Field(DEFAULT_GROUP_COLOR, max_length=20)
    is_leftover: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)


class ForceGroupUpdate(_Input):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = Field(None, max_length=20)
    is_leftover: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)


class ForceGroupRead(_Record):
    project_id: UUID
    name: str
    type: ForceGroupType
    color: str
    is_leftover: bool
    position: int


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

class MatrixEntryCreate(_Input):
    id: Optional[UUID] = None
    story_id: UUID
    group_id: UUID
    matches: Optional[bool] = None


class MatrixEntryUpdate(_Input):
    matches: Optional[bool] = None


class MatrixEntryRead(_Record):
    story_id: UUID
    group_id: UUID
    matches: Optional[bool] = None


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------

class PrincipalRead(BaseModel):
    """The authenticated user as the auth endpoints report it"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


def describe_validation_errors(errors: Iterable[Dict[str, Any]]) -> str:
    """
    Turn pydantic error dicts into one readable sentence

    Example: "participant_age: Input should be less than or equal to 119"
    """
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = err.get("msg", "is invalid")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or "Some fields are invalid."
