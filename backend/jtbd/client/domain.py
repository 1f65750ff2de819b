"""
Typed request functions, one per (entity, operation)

Inputs are validated with the same schemas the service uses, so a value the
service would reject fails here first without a network round trip.
"""
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from jtbd.client.transport import BackendClient
from jtbd.core.constants import Collection
from jtbd.core.errors import NotFoundError, ValidationError
from jtbd.schemas import (ForceCreate, ForceGroupCreate, ForceGroupRead,
                          ForceGroupUpdate, ForceRead, ForceUpdate,
                          InterviewCreate, InterviewRead, InterviewUpdate,
                          MatrixEntryCreate, MatrixEntryRead,
                          MatrixEntryUpdate, PrincipalRead, ProfileCreate,
                          ProfileRead, ProjectCreate, ProjectRead,
                          ProjectUpdate, StoryCreate, StoryRead, StoryUpdate,
                          describe_validation_errors)

ReadModel = TypeVar("ReadModel", bound=BaseModel)


def validate_input(schema: Type[BaseModel], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check ``data`` against a create/update schema

    Returns:
        JSON-ready dict with only the fields the caller set

    Raises:
        ValidationError: with a readable message naming the failing fields
    """
    try:
        model = schema.model_validate(data)
    except SchemaValidationError as e:
        raise ValidationError(describe_validation_errors(e.errors()), detail=str(e)) from e
    return model.model_dump(mode="json", exclude_unset=True)


def _parse(model: Type[ReadModel], data: Any) -> ReadModel:
    return model.model_validate(data)


def _parse_list(model: Type[ReadModel], rows: Any) -> List[ReadModel]:
    return [model.model_validate(row) for row in rows or []]


class DomainClient:
    """Entity operations over a ``BackendClient``"""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> PrincipalRead:
        body = {"email": email, "password": password, "full_name": full_name}
        return _parse(PrincipalRead, await self.backend.request("POST", "/api/auth/register", json=body))

    async def sign_in(self, email: str, password: str) -> Tuple[str, PrincipalRead]:
        """Returns the session token and the principal; the token is kept for later calls"""
        data = await self.backend.request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        self.backend.set_token(data["token"])
        return data["token"], _parse(PrincipalRead, data["user"])

    async def sign_out(self) -> None:
        """Invalidate the server session; the local token is dropped first"""
        token = self.backend.token
        self.backend.set_token(None)
        if token:
            await self.backend.request("POST", "/api/auth/logout", token=token)

    async def current_principal(self) -> PrincipalRead:
        return _parse(PrincipalRead, await self.backend.request("GET", "/api/auth/me"))

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def get_profile(self, profile_id: UUID) -> Optional[ProfileRead]:
        """The profile, or None when it does not exist yet"""
        try:
            data = await self.backend.fetch(Collection.PROFILES.value, profile_id)
        except NotFoundError:
            return None
        return _parse(ProfileRead, data)

    async def create_profile(self, profile_id: UUID, email: str, full_name: str) -> ProfileRead:
        payload = validate_input(ProfileCreate, {"id": profile_id, "email": email, "full_name": full_name})
        return _parse(ProfileRead, await self.backend.create_with_retry(Collection.PROFILES.value, payload))

    async def list_profiles(self, ids: Optional[List[UUID]] = None) -> List[ProfileRead]:
        if ids is not None and not ids:
            return []
        params = {"ids": [str(i) for i in ids]} if ids else None
        rows = await self.backend.request("GET", f"/api/{Collection.PROFILES.value}", params=params)
        return _parse_list(ProfileRead, rows)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, limit: Optional[int] = None) -> List[ProjectRead]:
        """Newest first, each with its owner's profile"""
        return _parse_list(ProjectRead, await self.backend.select(Collection.PROJECTS.value, limit=limit))

    async def get_project(self, project_id: UUID) -> ProjectRead:
        return _parse(ProjectRead, await self.backend.fetch(Collection.PROJECTS.value, project_id))

    async def create_project(self, name: str, description: str = "", **fields: Any) -> ProjectRead:
        payload = validate_input(ProjectCreate, {"name": name, "description": description, **fields})
        return _parse(ProjectRead, await self.backend.create_with_retry(Collection.PROJECTS.value, payload))

    async def update_project(self, project_id: UUID, **changes: Any) -> ProjectRead:
        payload = validate_input(ProjectUpdate, changes)
        return _parse(ProjectRead, await self.backend.update(Collection.PROJECTS.value, project_id, payload))

    async def delete_project(self, project_id: UUID) -> None:
        """Removes the project's whole subtree"""
        await self.backend.delete(Collection.PROJECTS.value, project_id)

    # ------------------------------------------------------------------
    # Interviews
    # ------------------------------------------------------------------

    async def list_interviews(self, project_id: UUID) -> List[InterviewRead]:
        rows = await self.backend.select(Collection.INTERVIEWS.value, project_id=project_id)
        return _parse_list(InterviewRead, rows)

    async def create_interview(self, project_id: UUID, participant_name: str, **fields: Any) -> InterviewRead:
        payload = validate_input(
            InterviewCreate,
            {"project_id": project_id, "participant_name": participant_name, **fields},
        )
        return _parse(InterviewRead, await self.backend.create_with_retry(Collection.INTERVIEWS.value, payload))

    async def update_interview(self, interview_id: UUID, **changes: Any) -> InterviewRead:
        payload = validate_input(InterviewUpdate, changes)
        return _parse(InterviewRead, await self.backend.update(Collection.INTERVIEWS.value, interview_id, payload))

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    async def list_stories(
        self,
        project_id: Optional[UUID] = None,
        interview_id: Optional[UUID] = None,
    ) -> List[StoryRead]:
        rows = await self.backend.select(
            Collection.STORIES.value, project_id=project_id, interview_id=interview_id
        )
        return _parse_list(StoryRead, rows)

    async def create_story(
        self,
        interview_id: UUID,
        title: str,
        description: str,
        situation_a: str,
        situation_b: str,
        **fields: Any,
    ) -> StoryRead:
        payload = validate_input(StoryCreate, {
            "interview_id": interview_id,
            "title": title,
            "description": description,
            "situation_a": situation_a,
            "situation_b": situation_b,
            **fields,
        })
        return _parse(StoryRead, await self.backend.create_with_retry(Collection.STORIES.value, payload))

    async def update_story(self, story_id: UUID, **changes: Any) -> StoryRead:
        payload = validate_input(StoryUpdate, changes)
        return _parse(StoryRead, await self.backend.update(Collection.STORIES.value, story_id, payload))

    # ------------------------------------------------------------------
    # Forces
    # ------------------------------------------------------------------

    async def list_forces(
        self,
        project_id: Optional[UUID] = None,
        story_id: Optional[UUID] = None,
    ) -> List[ForceRead]:
        rows = await self.backend.select(Collection.FORCES.value, project_id=project_id, story_id=story_id)
        return _parse_list(ForceRead, rows)

    async def create_force(self, story_id: UUID, type: str, description: str, **fields: Any) -> ForceRead:
        payload = validate_input(
            ForceCreate,
            {"story_id": story_id, "type": type, "description": description, **fields},
        )
        return _parse(ForceRead, await self.backend.create_with_retry(Collection.FORCES.value, payload))

    async def update_force(self, force_id: UUID, **changes: Any) -> ForceRead:
        payload = validate_input(ForceUpdate, changes)
        return _parse(ForceRead, await self.backend.update(Collection.FORCES.value, force_id, payload))

    async def delete_force(self, force_id: UUID) -> None:
        """Idempotent: deleting a force that is already gone succeeds"""
        await self.backend.delete(Collection.FORCES.value, force_id)

    async def assign_force_to_group(self, force_id: UUID, group_id: Optional[UUID]) -> ForceRead:
        """Move a force into a group, or back to ungrouped with ``group_id=None``"""
        return await self.update_force(force_id, group_id=group_id)

    # ------------------------------------------------------------------
    # Force groups
    # ------------------------------------------------------------------

    async def list_force_groups(self, project_id: UUID) -> List[ForceGroupRead]:
        """Ordered by position"""
        rows = await self.backend.select(Collection.FORCE_GROUPS.value, project_id=project_id)
        return _parse_list(ForceGroupRead, rows)

    async def create_force_group(self, project_id: UUID, name: str, type: str, **fields: Any) -> ForceGroupRead:
        payload = validate_input(
            ForceGroupCreate,
            {"project_id": project_id, "name": name, "type": type, **fields},
        )
        return _parse(ForceGroupRead, await self.backend.create_with_retry(Collection.FORCE_GROUPS.value, payload))

    async def update_force_group(self, group_id: UUID, **changes: Any) -> ForceGroupRead:
        payload = validate_input(ForceGroupUpdate, changes)
        return _parse(ForceGroupRead, await self.backend.update(Collection.FORCE_GROUPS.value, group_id, payload))

    # ------------------------------------------------------------------
    # Matrix
    # ------------------------------------------------------------------

    async def list_matrix_entries(
        self,
        project_id: Optional[UUID] = None,
        story_id: Optional[UUID] = None,
    ) -> List[MatrixEntryRead]:
        rows = await self.backend.select(Collection.MATRIX.value, project_id=project_id, story_id=story_id)
        return _parse_list(MatrixEntryRead, rows)

    async def create_matrix_entry(
        self,
        story_id: UUID,
        group_id: UUID,
        matches: Optional[bool] = None,
    ) -> MatrixEntryRead:
        """A second entry for the same (story, group) pair is rejected with ConflictError"""
        payload = validate_input(
            MatrixEntryCreate,
            {"story_id": story_id, "group_id": group_id, "matches": matches},
        )
        return _parse(MatrixEntryRead, await self.backend.create_with_retry(Collection.MATRIX.value, payload))

    async def update_matrix_entry(self, entry_id: UUID, matches: Optional[bool]) -> MatrixEntryRead:
        payload = validate_input(MatrixEntryUpdate, {"matches": matches})
        return _parse(MatrixEntryRead, await self.backend.update(Collection.MATRIX.value, entry_id, payload))
