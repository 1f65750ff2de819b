"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Authentication
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('user_metadata', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(255), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_activity', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_token', 'sessions', ['token'], unique=True)
    op.create_index('ix_sessions_expires_at', 'sessions', ['expires_at'])

    # Profiles mirror users one-to-one
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='researcher'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_profiles_created_at', 'profiles', ['created_at'])

    # Research data
    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.CheckConstraint("status IN ('active', 'completed', 'archived')", name='ck_projects_status'),
    )
    op.create_index('ix_projects_owner_id', 'projects', ['owner_id'])
    op.create_index('ix_projects_created_at', 'projects', ['created_at'])

    op.create_table(
        'interviews',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('participant_name', sa.String(255), nullable=False),
        sa.Column('participant_age', sa.Integer(), nullable=True),
        sa.Column('participant_gender', sa.String(50), nullable=True),
        sa.Column('interview_date', sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column('context', sa.Text(), nullable=False, server_default=''),
        *_timestamps(),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            'participant_age > 0 AND participant_age < 120',
            name='ck_interviews_participant_age',
        ),
    )
    op.create_index('ix_interviews_project_id', 'interviews', ['project_id'])
    op.create_index('ix_interviews_created_at', 'interviews', ['created_at'])

    op.create_table(
        'stories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('interview_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('situation_a', sa.Text(), nullable=False),
        sa.Column('situation_b', sa.Text(), nullable=False),
        sa.Column('cluster_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['interview_id'], ['interviews.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_stories_interview_id', 'stories', ['interview_id'])
    op.create_index('ix_stories_created_at', 'stories', ['created_at'])

    op.create_table(
        'force_groups',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('color', sa.String(20), nullable=False, server_default='#3B82F6'),
        sa.Column('is_leftover', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.CheckConstraint("type IN ('push', 'pull')", name='ck_force_groups_type'),
    )
    op.create_index('ix_force_groups_project_id', 'force_groups', ['project_id'])
    op.create_index('ix_force_groups_created_at', 'force_groups', ['created_at'])

    op.create_table(
        'forces',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('story_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('group_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['story_id'], ['stories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['force_groups.id'], ondelete='SET NULL'),
        sa.CheckConstraint("type IN ('push', 'pull', 'habit', 'anxiety')", name='ck_forces_type'),
    )
    op.create_index('ix_forces_story_id', 'forces', ['story_id'])
    op.create_index('ix_forces_group_id', 'forces', ['group_id'])
    op.create_index('ix_forces_created_at', 'forces', ['created_at'])

    op.create_table(
        'story_group_matrix',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('story_id', sa.Uuid(), nullable=False),
        sa.Column('group_id', sa.Uuid(), nullable=False),
        sa.Column('matches', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['story_id'], ['stories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['force_groups.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('story_id', 'group_id', name='uq_story_group_matrix_pair'),
    )
    op.create_index('ix_story_group_matrix_story_id', 'story_group_matrix', ['story_id'])
    op.create_index('ix_story_group_matrix_group_id', 'story_group_matrix', ['group_id'])
    op.create_index('ix_story_group_matrix_created_at', 'story_group_matrix', ['created_at'])


def downgrade() -> None:
    op.drop_table('story_group_matrix')
    op.drop_table('forces')
    op.drop_table('force_groups')
    op.drop_table('stories')
    op.drop_table('interviews')
    op.drop_table('projects')
    op.drop_table('profiles')
    op.drop_table('sessions')
    op.drop_table('users')
