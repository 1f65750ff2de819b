"""
Shared column helpers
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Uuid, func


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without timezone)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def uuid_pk() -> Column:
    return Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)


class TimestampMixin:
    """created_at / updated_at set by the server on insert and update"""
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)
