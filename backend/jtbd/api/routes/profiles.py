"""
Profile API routes
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from jtbd.core.auth import get_access_policy, get_current_user
from jtbd.core.database import get_db
from jtbd.core.errors import NotFoundError
from jtbd.core.policies import AccessPolicy
from jtbd.models.user import User
from jtbd.schemas import ProfileCreate, ProfileRead, ProfileUpdate
from jtbd.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("", response_model=List[ProfileRead])
async def list_profiles(
    ids: Optional[List[UUID]] = Query(None, description="Only these profile ids"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
):
    """All profiles, or the requested ones"""
    profiles = ProfileService(db, policy).list_profiles(ids)
    return [ProfileRead.model_validate(p) for p in profiles]


@router.get("/{profile_id}", response_model=ProfileRead)
async def get_profile(
    profile_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
):
    profile = ProfileService(db, policy).get_profile(profile_id)
    if profile is None:
        raise NotFoundError("Profile not found.", detail=f"profiles/{profile_id}")
    return ProfileRead.model_validate(profile)


@router.post("", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
async def create_profile(
    payload: ProfileCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
):
    """Create the caller's own profile"""
    profile = ProfileService(db, policy).create_profile(user, payload)
    return ProfileRead.model_validate(profile)


@router.patch("/{profile_id}", response_model=ProfileRead)
async def update_profile(
    profile_id: UUID,
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
):
    profile = ProfileService(db, policy).update_profile(user, profile_id, payload)
    return ProfileRead.model_validate(profile)
