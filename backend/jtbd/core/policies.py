"""
Row access policy for collection requests

Two modes are supported (see ``Settings.access_policy``):

* ``team``: any authenticated principal may read and write every row.
* ``owner``: a row is visible and writable only when the project it traces to
  is owned by the principal.

Profiles follow their own rule in both modes: readable by everyone signed in,
writable only by the principal the profile belongs to.
"""
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Query

from jtbd.core.config import AccessPolicyMode, get_settings
from jtbd.core.errors import AuthenticationError, AuthorizationError
from jtbd.core.logging_config import LoggingConfig
from jtbd.models.project import Project
from jtbd.models.user import User

logger = LoggingConfig.get_logger(__name__)


class Action(str, Enum):
    """Operations evaluated by the policy"""
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class AccessPolicy:
    """Authorization predicate evaluated on every collection request"""

    def __init__(self, mode: Optional[AccessPolicyMode] = None):
        self.mode = AccessPolicyMode(mode or get_settings().access_policy)

    @property
    def is_owner_scoped(self) -> bool:
        return self.mode == AccessPolicyMode.OWNER

    def require_principal(self, principal: Optional[User]) -> User:
        """Every collection request needs a signed-in principal"""
        if principal is None:
            raise AuthenticationError(detail="no principal on request")
        return principal

    def filter_visible(self, query: Query, principal: User) -> Query:
        """
        Restrict a query to the rows the principal may see

        The query must already be joined to ``Project`` (the collection
        service joins every collection up its parent chain).
        """
        self.require_principal(principal)
        if not self.is_owner_scoped:
            return query
        return query.filter(Project.owner_id == principal.id)

    def authorize_project(self, principal: User, project: Project, action: Action) -> None:
        """
        Check a write against the project the row traces to

        Raises:
            AuthorizationError: owner mode and the project belongs to someone else
        """
        self.require_principal(principal)
        if not self.is_owner_scoped:
            return
        if project.owner_id != principal.id:
            logger.warning(
                f"Denied {action.value} under project {project.id} for principal {principal.id}",
                extra={"policy": self.mode.value},
            )
            raise AuthorizationError(
                detail=f"{action.value} on project {project.id} not owned by {principal.id}"
            )

    def authorize_profile_write(self, principal: User, profile_id: UUID, action: Action) -> None:
        """Profiles may only be created or edited by the principal they mirror"""
        self.require_principal(principal)
        if action == Action.DELETE:
            raise AuthorizationError(
                "Profiles cannot be deleted.",
                detail=f"delete on profile {profile_id}",
            )
        if profile_id != principal.id:
            logger.warning(f"Denied {action.value} on profile {profile_id} for principal {principal.id}")
            raise AuthorizationError(detail=f"{action.value} on profile {profile_id} by {principal.id}")
