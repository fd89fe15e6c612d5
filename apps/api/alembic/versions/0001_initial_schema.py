"""Initial schema: users, tickets, interactions.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Creates:
- users (unique email, role check)
- tickets (state/priority checks, closed_at consistency, version column)
- interactions (append-only audit trail and comments)
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), server_default='client', nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.CheckConstraint("role IN ('client', 'operator', 'admin')", name='ck_users_role_valid'),
    )

    # ==========================================================================
    # tickets
    # ==========================================================================
    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(20), server_default='open', nullable=False),
        sa.Column('priority', sa.String(20), server_default='medium', nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('assignee_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.ForeignKeyConstraint(['assignee_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "state IN ('open', 'in_progress', 'resolved', 'closed')",
            name='ck_tickets_state_valid',
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'critical')",
            name='ck_tickets_priority_valid',
        ),
        sa.CheckConstraint(
            "(state = 'closed') = (closed_at IS NOT NULL)",
            name='ck_tickets_closed_at_matches_state',
        ),
    )
    op.create_index('idx_tickets_owner_created', 'tickets', ['owner_id', 'created_at'])
    op.create_index('idx_tickets_assignee', 'tickets', ['assignee_id'])
    op.create_index('idx_tickets_state_updated', 'tickets', ['state', 'updated_at'])

    # ==========================================================================
    # interactions
    # ==========================================================================
    op.create_table(
        'interactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ticket_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('internal_only', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.ForeignKeyConstraint(['ticket_id'], ['tickets.id']),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "type IN ('comment', 'state_change', 'assignment', 'closure')",
            name='ck_interactions_type_valid',
        ),
    )
    op.create_index('idx_interactions_ticket_created', 'interactions', ['ticket_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_interactions_ticket_created', table_name='interactions')
    op.drop_table('interactions')
    op.drop_index('idx_tickets_state_updated', table_name='tickets')
    op.drop_index('idx_tickets_assignee', table_name='tickets')
    op.drop_index('idx_tickets_owner_created', table_name='tickets')
    op.drop_table('tickets')
    op.drop_table('users')
