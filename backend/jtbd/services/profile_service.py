"""
Profile lookup and creation
"""
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from jtbd.core.errors import ConflictError, NotFoundError
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.metrics import collection_writes_total
from jtbd.core.policies import AccessPolicy, Action
from jtbd.models.mixins import utcnow
from jtbd.models.profile import Profile
from jtbd.models.user import User
from jtbd.schemas import ProfileCreate, ProfileUpdate

logger = LoggingConfig.get_logger(__name__)


class ProfileService:
    """Profiles: readable by any principal, writable only by their owner"""

    def __init__(self, db: Session, policy: Optional[AccessPolicy] = None):
        self.db = db
        self.policy = policy or AccessPolicy()

    def get_profile(self, profile_id: UUID) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == profile_id).first()

    def list_profiles(self, ids: Optional[Sequence[UUID]] = None) -> List[Profile]:
        query = self.db.query(Profile)
        if ids is not None:
            if not ids:
                return []
            query = query.filter(Profile.id.in_(list(ids)))
        return query.order_by(Profile.created_at.desc()).all()

    def create_profile(self, principal: User, data: ProfileCreate) -> Profile:
        """
        Insert the principal's own profile

        Raises:
            AuthorizationError: ``data.id`` is not the principal's id
            ConflictError: the profile already exists
        """
        self.policy.authorize_profile_write(principal, data.id, Action.INSERT)
        if self.get_profile(data.id) is not None:
            collection_writes_total.labels(collection="profiles", operation="insert", outcome="rejected").inc()
            raise ConflictError("This profile already exists.", code="duplicate_id")

        profile = Profile(id=data.id, email=data.email, full_name=data.full_name)
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)

        collection_writes_total.labels(collection="profiles", operation="insert", outcome="ok").inc()
        logger.info(f"Created profile {profile.id}")
        return profile

    def update_profile(self, principal: User, profile_id: UUID, data: ProfileUpdate) -> Profile:
        self.policy.authorize_profile_write(principal, profile_id, Action.UPDATE)
        profile = self.get_profile(profile_id)
        if profile is None:
            collection_writes_total.labels(collection="profiles", operation="update", outcome="not_found").inc()
            raise NotFoundError("Profile not found.")

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(profile, field, value)
        profile.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(profile)

        collection_writes_total.labels(collection="profiles", operation="update", outcome="ok").inc()
        return profile
