"""Initial schema creation

Revision ID: a001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a001'
down_revision = None
branch_labels = None
depends_on = None

# One open pass request per shift and requester
OPEN_REQUEST_CLAUSE = "status IN ('pending', 'pending_approval')"


def upgrade() -> None:
    """Create initial database schema."""

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(64), nullable=False),
        sa.Column('secondary_roles', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_role', 'users', ['role'])

    # Create schedules table
    op.create_table(
        'schedules',
        sa.Column('week_id', sa.String(16), nullable=False),
        sa.Column('status', sa.Enum('draft', 'proposed', 'published', name='schedulestatus'), nullable=True),
        sa.Column('shifts', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('week_id')
    )

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('type', sa.Enum('pass_request', name='notificationtype'), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'pending_approval', 'resolved', 'cancelled', name='passrequeststatus'),
            nullable=False
        ),
        sa.Column('week_id', sa.String(16), nullable=False),
        sa.Column('shift_id', sa.String(128), nullable=False),
        sa.Column('requesting_user_id', sa.String(36), nullable=False),
        sa.Column('target_user_id', sa.String(36), nullable=True),
        sa.Column('taken_by_user_id', sa.String(36), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_by', sa.JSON(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    for column in ('type', 'status', 'week_id', 'shift_id', 'requesting_user_id', 'target_user_id', 'taken_by_user_id'):
        op.create_index(f'ix_notifications_{column}', 'notifications', [column])
    op.create_index(
        'uq_notifications_open_request',
        'notifications',
        ['shift_id', 'requesting_user_id'],
        unique=True,
        sqlite_where=sa.text(OPEN_REQUEST_CLAUSE),
        postgresql_where=sa.text(OPEN_REQUEST_CLAUSE)
    )

    # Create app_data table
    op.create_table(
        'app_data',
        sa.Column('key', sa.String(64), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    # Create availability table
    op.create_table(
        'availability',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('user_name', sa.String(255), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('week_id', sa.String(16), nullable=False),
        sa.Column('available_slots', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_availability_user_id', 'availability', ['user_id'])
    op.create_index('ix_availability_date', 'availability', ['date'])
    op.create_index('ix_availability_week_id', 'availability', ['week_id'])

    # Create monthly_task_completions table
    op.create_table(
        'monthly_task_completions',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('date_key', sa.String(10), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('completions', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_monthly_task_completions_date_key', 'monthly_task_completions', ['date_key'])
    op.create_index('ix_monthly_task_completions_user_id', 'monthly_task_completions', ['user_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('monthly_task_completions')
    op.drop_table('availability')
    op.drop_table('app_data')
    op.drop_index('uq_notifications_open_request', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('schedules')
    op.drop_table('users')
