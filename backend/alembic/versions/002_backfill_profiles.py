"""backfill missing profiles

Every user gets a profile; accounts created before the client began
ensuring profiles on sign-in are filled in here.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000

"""
from datetime import datetime, timezone
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from jtbd.core.naming import resolve_display_name

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Tables as they stand at revision 001
users = sa.table(
    'users',
    sa.column('id', sa.Uuid()),
    sa.column('email', sa.String()),
    sa.column('user_metadata', sa.JSON()),
)
profiles = sa.table(
    'profiles',
    sa.column('id', sa.Uuid()),
    sa.column('email', sa.String()),
    sa.column('full_name', sa.String()),
    sa.column('role', sa.String()),
    sa.column('created_at', sa.DateTime()),
    sa.column('updated_at', sa.DateTime()),
)


def upgrade() -> None:
    bind = op.get_bind()
    missing = bind.execute(
        sa.select(users.c.id, users.c.email, users.c.user_metadata)
        .select_from(users.outerjoin(profiles, profiles.c.id == users.c.id))
        .where(profiles.c.id.is_(None))
    ).all()
    if not missing:
        return

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    rows = []
    for user_id, email, metadata in missing:
        metadata = metadata or {}
        rows.append({
            'id': user_id,
            'email': email,
            'full_name': resolve_display_name(metadata.get('full_name'), metadata.get('name'), email),
            'role': 'researcher',
            'created_at': now,
            'updated_at': now,
        })
    op.bulk_insert(profiles, rows)


def downgrade() -> None:
    # Backfilled profiles are indistinguishable from real ones
    pass
