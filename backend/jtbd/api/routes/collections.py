"""
Collection API routes

One router per named collection, all built from the same factory:

    GET    /api/<collection>          filtered select
    GET    /api/<collection>/{id}     fetch by id
    POST   /api/<collection>          insert
    PATCH  /api/<collection>/{id}     partial update
    DELETE /api/<collection>/{id}     idempotent delete
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from jtbd.core.auth import get_access_policy, get_current_user
from jtbd.core.database import get_db
from jtbd.core.policies import AccessPolicy
from jtbd.models.user import User
from jtbd.services.collection_service import (COLLECTIONS, MAX_LIST_LIMIT,
                                              CollectionService,
                                              CollectionDef)


def get_collection_service(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AccessPolicy = Depends(get_access_policy),
) -> CollectionService:
    return CollectionService(db, user, policy)


def build_collection_router(coll: CollectionDef) -> APIRouter:
    """Create the CRUD router for one collection"""
    collection = coll.name.value
    router = APIRouter(prefix=f"/api/{collection}", tags=[collection])
    read_schema = coll.read_schema

    @router.get("", response_model=List[read_schema], name=f"list_{collection}")
    async def list_rows(
        project_id: Optional[UUID] = Query(None, description="Only rows under this project"),
        interview_id: Optional[UUID] = None,
        story_id: Optional[UUID] = None,
        group_id: Optional[UUID] = None,
        owner_id: Optional[UUID] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = Query(None, ge=1, le=MAX_LIST_LIMIT),
        service: CollectionService = Depends(get_collection_service),
    ):
        filters = {
            "interview_id": interview_id,
            "story_id": story_id,
            "group_id": group_id,
            "owner_id": owner_id,
            "type": type,
            "status": status,
        }
        rows = service.list(coll, project_id=project_id, filters=filters, limit=limit)
        return [read_schema.model_validate(row) for row in rows]

    @router.get("/{row_id}", response_model=read_schema, name=f"get_{collection}")
    async def get_row(
        row_id: UUID,
        service: CollectionService = Depends(get_collection_service),
    ):
        return read_schema.model_validate(service.get(coll, row_id))

    @router.post("", response_model=read_schema, status_code=201, name=f"create_{collection}")
    async def create_row(
        payload: coll.create_schema,
        service: CollectionService = Depends(get_collection_service),
    ):
        return read_schema.model_validate(service.create(coll, payload))

    @router.patch("/{row_id}", response_model=read_schema, name=f"update_{collection}")
    async def update_row(
        row_id: UUID,
        payload: coll.update_schema,
        service: CollectionService = Depends(get_collection_service),
    ):
        return read_schema.model_validate(service.update(coll, row_id, payload))

    @router.delete("/{row_id}", status_code=204, name=f"delete_{collection}")
    async def delete_row(
        row_id: UUID,
        service: CollectionService = Depends(get_collection_service),
    ):
        service.delete(coll, row_id)
        return Response(status_code=204)

    return router


routers = [build_collection_router(coll) for coll in COLLECTIONS.values()]
