"""initial_schema

Revision ID: 4f1b2c9d7e30
Revises:
Create Date: 2026-10-19 10:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1b2c9d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create profile store, run and application tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), unique=True, nullable=False),
        sa.Column('resume', sa.JSON, nullable=True),
        sa.Column('resume_text', sa.Text, nullable=False, server_default=''),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'preferences',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), unique=True, nullable=False),
        sa.Column('keywords', sa.JSON, nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('remote', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('radius', sa.Integer, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'automation_configs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), unique=True, nullable=False),
        sa.Column('max_applications_per_day', sa.Integer, nullable=False, server_default='20'),
        sa.Column('minimum_match_score', sa.Float, nullable=False, server_default='75'),
        sa.Column('blacklisted_companies', sa.JSON, nullable=False),
        sa.Column('auto_follow_up', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('follow_up_delay_days', sa.Integer, nullable=False, server_default='5'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'processing_runs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('jobs_found', sa.Integer, nullable=False, server_default='0'),
        sa.Column('jobs_processed', sa.Integer, nullable=False, server_default='0'),
        sa.Column('error', sa.Text, nullable=True),
        sa.Column('cancelled', sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index(
        'uq_processing_runs_active_user',
        'processing_runs',
        ['user_id'],
        unique=True,
        sqlite_where=sa.text('completed_at IS NULL'),
        postgresql_where=sa.text('completed_at IS NULL'),
    )

    op.create_table(
        'run_cooldowns',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('last_run_start', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'applications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('job_ref', sa.String(2048), nullable=False),
        sa.Column('job_title', sa.String(255), nullable=False, server_default=''),
        sa.Column('company', sa.String(255), nullable=False, server_default=''),
        sa.Column('match_score', sa.Float, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='applied'),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_contact_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('customized_resume', sa.Text, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.UniqueConstraint('user_id', 'job_ref', name='uq_applications_user_job'),
    )

    op.create_table(
        'follow_ups',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('application_id', sa.String(36), sa.ForeignKey('applications.id'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
    )


def downgrade() -> None:
    """Drop all application tables."""
    op.drop_table('follow_ups')
    op.drop_table('applications')
    op.drop_table('run_cooldowns')
    op.drop_index('uq_processing_runs_active_user', table_name='processing_runs')
    op.drop_table('processing_runs')
    op.drop_table('automation_configs')
    op.drop_table('preferences')
    op.drop_table('profiles')
    op.drop_table('users')
