"""
Generic CRUD over the named research collections

Every collection traces to exactly one project through its parent chain
(project <- interview <- story <- force / matrix entry, project <- force group).
Reads are joined up that chain so a ``project_id`` scope and the owner access
policy apply uniformly to every collection.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from jtbd.core.config import get_settings
from jtbd.core.constants import Collection, ForceGroupType, ForceType
from jtbd.core.errors import (ConflictError, JtbdError, NotFoundError,
                              ValidationError)
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.metrics import collection_writes_total
from jtbd.core.naming import is_leftover_name
from jtbd.core.policies import AccessPolicy, Action
from jtbd.models import (Force, ForceGroup, Interview, MatrixEntry, Profile,
                         Project, Story, User)
from jtbd.models.mixins import utcnow
from jtbd.schemas import (ForceCreate, ForceGroupCreate, ForceGroupRead,
                          ForceGroupUpdate, ForceRead, ForceUpdate,
                          InterviewCreate, InterviewRead, InterviewUpdate,
                          MatrixEntryCreate, MatrixEntryRead,
                          MatrixEntryUpdate, ProjectCreate, ProjectRead,
                          ProjectUpdate, StoryCreate, StoryRead, StoryUpdate)

logger = LoggingConfig.get_logger(__name__)

MAX_LIST_LIMIT = 200


@dataclass(frozen=True)
class CollectionDef:
    """How one named collection is stored, scoped and validated"""
    name: Collection
    model: Any
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    read_schema: Type[BaseModel]
    # (target, onclause) joins leading from the model up to Project
    project_path: Tuple[Tuple[Any, Any], ...] = ()
    # Query parameters accepted as equality filters on the model itself
    filters: Tuple[str, ...] = ()
    ordered_by_position: bool = False
    label: str = ""

    @property
    def singular(self) -> str:
        return self.label or self.name.value.rstrip("s")


_INTERVIEW_TO_PROJECT = (Project, Interview.project_id == Project.id)
_STORY_TO_INTERVIEW = (Interview, Story.interview_id == Interview.id)

COLLECTIONS: Dict[Collection, CollectionDef] = {
    Collection.PROJECTS: CollectionDef(
        name=Collection.PROJECTS,
        model=Project,
        create_schema=ProjectCreate,
        update_schema=ProjectUpdate,
        read_schema=ProjectRead,
        filters=("owner_id", "status"),
    ),
    Collection.INTERVIEWS: CollectionDef(
        name=Collection.INTERVIEWS,
        model=Interview,
        create_schema=InterviewCreate,
        update_schema=InterviewUpdate,
        read_schema=InterviewRead,
        project_path=(_INTERVIEW_TO_PROJECT,),
    ),
    Collection.STORIES: CollectionDef(
        name=Collection.STORIES,
        model=Story,
        create_schema=StoryCreate,
        update_schema=StoryUpdate,
        read_schema=StoryRead,
        project_path=(_STORY_TO_INTERVIEW, _INTERVIEW_TO_PROJECT),
        filters=("interview_id",),
        label="story",
    ),
    Collection.FORCES: CollectionDef(
        name=Collection.FORCES,
        model=Force,
        create_schema=ForceCreate,
        update_schema=ForceUpdate,
        read_schema=ForceRead,
        project_path=((Story, Force.story_id == Story.id), _STORY_TO_INTERVIEW, _INTERVIEW_TO_PROJECT),
        filters=("story_id", "group_id", "type"),
    ),
    Collection.FORCE_GROUPS: CollectionDef(
        name=Collection.FORCE_GROUPS,
        model=ForceGroup,
        create_schema=ForceGroupCreate,
        update_schema=ForceGroupUpdate,
        read_schema=ForceGroupRead,
        project_path=((Project, ForceGroup.project_id == Project.id),),
        filters=("type",),
        ordered_by_position=True,
        label="force group",
    ),
    Collection.MATRIX: CollectionDef(
        name=Collection.MATRIX,
        model=MatrixEntry,
        create_schema=MatrixEntryCreate,
        update_schema=MatrixEntryUpdate,
        read_schema=MatrixEntryRead,
        project_path=((Story, MatrixEntry.story_id == Story.id), _STORY_TO_INTERVIEW, _INTERVIEW_TO_PROJECT),
        filters=("story_id", "group_id"),
        label="matrix entry",
    ),
}


def get_collection_def(name) -> CollectionDef:
    try:
        return COLLECTIONS[Collection(name)]
    except (KeyError, ValueError):
        raise NotFoundError(f"Unknown collection '{name}'.", code="unknown_collection")


def translate_integrity_error(exc: IntegrityError) -> JtbdError:
    """
    Map a database constraint failure onto the error taxonomy

    The raw driver message only goes into ``detail``.
    """
    raw = str(getattr(exc, "orig", exc))
    lowered = raw.lower()
    if "unique" in lowered or "duplicate key" in lowered:
        if "story_group_matrix" in lowered or "uq_story_group_matrix_pair" in lowered:
            return ConflictError(
                "This story already has a response for that group.",
                code="duplicate_matrix_entry",
                detail=raw,
            )
        return ConflictError(detail=raw)
    if "foreign key" in lowered:
        return NotFoundError("A referenced record no longer exists.", code="missing_reference", detail=raw)
    if "check" in lowered:
        return ValidationError(code="constraint_violation", detail=raw)
    if "not null" in lowered:
        return ValidationError("A required field is missing.", code="required", detail=raw)
    return ValidationError(detail=raw)


class CollectionService:
    """Scoped, policy-checked CRUD for one request's principal"""

    def __init__(self, db: Session, principal: User, policy: Optional[AccessPolicy] = None):
        self.db = db
        self.policy = policy or AccessPolicy()
        self.principal = self.policy.require_principal(principal)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _scoped_query(self, coll: CollectionDef) -> Query:
        query = self.db.query(coll.model)
        for target, onclause in coll.project_path:
            query = query.join(target, onclause)
        return self.policy.filter_visible(query, self.principal)

    def list(
        self,
        coll: CollectionDef,
        project_id: Optional[UUID] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Any]:
        """
        Filtered select

        Args:
            coll: Collection to read
            project_id: Only rows tracing to this project
            filters: Equality filters on the collection's own columns
            limit: Maximum rows (capped); projects default to the configured page size

        Returns:
            Rows ordered newest first, or by position for force groups
        """
        query = self._scoped_query(coll)
        model = coll.model

        if project_id is not None:
            query = query.filter(Project.id == project_id)

        for name, value in (filters or {}).items():
            if value is None:
                continue
            if name not in coll.filters:
                raise ValidationError(f"Cannot filter {coll.name.value} by '{name}'.", code="invalid_filter")
            query = query.filter(getattr(model, name) == value)

        if coll.ordered_by_position:
            query = query.order_by(model.position.asc(), model.created_at.asc())
        else:
            query = query.order_by(model.created_at.desc())

        if limit is None and coll.name == Collection.PROJECTS:
            limit = get_settings().project_list_limit
        if limit is not None:
            query = query.limit(max(1, min(limit, MAX_LIST_LIMIT)))

        return query.all()

    def get(self, coll: CollectionDef, row_id: UUID) -> Any:
        """
        Fetch by id

        Raises:
            NotFoundError: missing, or invisible under the access policy
        """
        row = self._scoped_query(coll).filter(coll.model.id == row_id).first()
        if row is None:
            raise NotFoundError(
                f"The requested {coll.singular} was not found.",
                detail=f"{coll.name.value}/{row_id}",
            )
        return row

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, coll: CollectionDef, data: BaseModel) -> Any:
        """
        Insert one row and return it as stored

        A caller-supplied ``id`` that already exists is rejected with a
        ``duplicate_id`` conflict so clients can detect a retried insert that
        already landed.
        """
        values = data.model_dump(exclude_none=True)
        project = self._prepare_insert(coll, values)
        if project is not None:
            self.policy.authorize_project(self.principal, project, Action.INSERT)

        row_id = values.get("id")
        if row_id is not None and self.db.get(coll.model, row_id) is not None:
            self._count(coll, "insert", "rejected")
            raise ConflictError(
                f"This {coll.singular} already exists.",
                code="duplicate_id",
                detail=f"{coll.name.value}/{row_id}",
            )

        row = coll.model(**values)
        self.db.add(row)
        self._commit(coll, "insert")
        self.db.refresh(row)

        self._count(coll, "insert", "ok")
        logger.info(f"Created {coll.singular} {row.id}", extra={"collection": coll.name.value})
        return row

    def update(self, coll: CollectionDef, row_id: UUID, data: BaseModel) -> Any:
        """
        Partial update; ``updated_at`` is always refreshed

        Raises:
            NotFoundError: row missing or invisible
        """
        try:
            row = self.get(coll, row_id)
        except NotFoundError:
            self._count(coll, "update", "not_found")
            raise

        changes = data.model_dump(exclude_unset=True)
        columns = coll.model.__table__.c
        for name, value in changes.items():
            if value is None and not columns[name].nullable:
                self._count(coll, "update", "rejected")
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} cannot be empty.", code="required")

        if coll.name == Collection.FORCES and ("group_id" in changes or "type" in changes):
            force_type = changes.get("type", row.type)
            group_id = changes["group_id"] if "group_id" in changes else row.group_id
            if group_id is not None:
                self._check_group_assignment(force_type, self._project_of(Collection.STORIES, row.story_id), group_id)

        for name, value in changes.items():
            setattr(row, name, value)
        row.updated_at = utcnow()
        self._commit(coll, "update")
        self.db.refresh(row)

        self._count(coll, "update", "ok")
        logger.debug(f"Updated {coll.singular} {row.id}", extra={"fields": sorted(changes)})
        return row

    def delete(self, coll: CollectionDef, row_id: UUID) -> bool:
        """
        Delete one row; children go with it through database cascades

        Returns:
            False when there was nothing to delete (not an error)
        """
        row = self._scoped_query(coll).filter(coll.model.id == row_id).first()
        if row is None:
            self._count(coll, "delete", "not_found")
            logger.debug(f"Delete of missing {coll.singular} {row_id} ignored")
            return False

        self.db.delete(row)
        self._commit(coll, "delete")

        self._count(coll, "delete", "ok")
        logger.info(f"Deleted {coll.singular} {row_id}", extra={"collection": coll.name.value})
        return True

    # ------------------------------------------------------------------
    # Insert preparation per collection
    # ------------------------------------------------------------------

    def _prepare_insert(self, coll: CollectionDef, values: Dict[str, Any]) -> Optional[Project]:
        """Fill server-side defaults and return the project the new row traces to"""
        if coll.name == Collection.PROJECTS:
            if self.db.get(Profile, self.principal.id) is None:
                raise ValidationError(
                    "Your profile is missing. Please sign in again.",
                    code="profile_missing",
                )
            values["owner_id"] = self.principal.id
            return None

        if coll.name == Collection.INTERVIEWS:
            return self._project_of(Collection.PROJECTS, values["project_id"])

        if coll.name == Collection.STORIES:
            return self._project_of(Collection.INTERVIEWS, values["interview_id"])

        if coll.name == Collection.FORCES:
            project = self._project_of(Collection.STORIES, values["story_id"])
            if values.get("group_id") is not None:
                self._check_group_assignment(values["type"], project, values["group_id"])
            return project

        if coll.name == Collection.FORCE_GROUPS:
            project = self._project_of(Collection.PROJECTS, values["project_id"])
            if values.get("is_leftover") is None:
                values["is_leftover"] = is_leftover_name(values["name"])
            if values.get("position") is None:
                current = (
                    self.db.query(func.max(ForceGroup.position))
                    .filter(ForceGroup.project_id == project.id)
                    .scalar()
                )
                values["position"] = 0 if current is None else current + 1
            return project

        if coll.name == Collection.MATRIX:
            project = self._project_of(Collection.STORIES, values["story_id"])
            group = self.db.get(ForceGroup, values["group_id"])
            if group is None:
                raise NotFoundError("The force group was not found.", detail=f"force_groups/{values['group_id']}")
            if group.project_id != project.id:
                raise ValidationError(
                    "The story and the force group belong to different projects.",
                    code="cross_project",
                )
            return project

        raise NotFoundError(f"Unknown collection '{coll.name.value}'.", code="unknown_collection")

    def _project_of(self, collection: Collection, row_id: UUID) -> Project:
        """
        The project a parent row traces to

        Not filtered by visibility: writes under someone else's project are
        reported as authorization errors, not as missing rows.
        """
        if collection == Collection.PROJECTS:
            project = self.db.get(Project, row_id)
        else:
            coll = COLLECTIONS[collection]
            query = self.db.query(Project).select_from(coll.model)
            for target, onclause in coll.project_path:
                query = query.join(target, onclause)
            project = query.filter(coll.model.id == row_id).first()

        if project is None:
            label = COLLECTIONS[collection].singular
            raise NotFoundError(
                f"The {label} was not found. It may have been deleted.",
                code="missing_parent",
                detail=f"{collection.value}/{row_id}",
            )
        return project

    def _check_group_assignment(self, force_type: str, project: Project, group_id: UUID) -> None:
        """
        A force may only sit in a group of its own type within its own project

        Habit and anxiety forces are never grouped.
        """
        force_type = ForceType(force_type)
        if force_type.value not in {t.value for t in ForceGroupType}:
            raise ValidationError(
                f"{force_type.value.capitalize()} forces cannot be assigned to a group.",
                code="ungroupable_force",
            )

        group = self.db.get(ForceGroup, group_id)
        if group is None:
            raise NotFoundError("The force group was not found.", detail=f"force_groups/{group_id}")
        if group.project_id != project.id:
            raise ValidationError(
                "The force group belongs to a different project.",
                code="cross_project",
            )
        if group.type != force_type.value:
            raise ValidationError(
                f"A {force_type.value} force cannot be placed in a {group.type} group.",
                code="group_type_mismatch",
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit(self, coll: CollectionDef, operation: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            error = translate_integrity_error(e)
            self._count(coll, operation, "rejected")
            logger.warning(
                f"Rejected {operation} on {coll.name.value}: {error.code}",
                extra={"detail": error.detail},
            )
            raise error from e

    def _count(self, coll: CollectionDef, operation: str, outcome: str) -> None:
        collection_writes_total.labels(
            collection=coll.name.value, operation=operation, outcome=outcome
        ).inc()
