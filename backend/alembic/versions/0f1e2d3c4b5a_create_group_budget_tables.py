"""create group budget tables

Revision ID: 0f1e2d3c4b5a
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0f1e2d3c4b5a'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

budget_period = sa.Enum('daily', 'weekly', 'monthly', name='budgetperiod')
budget_role = sa.Enum('owner', 'member', name='budgetrole')
invitation_status = sa.Enum('pending', 'accepted', 'declined', 'revoked', name='invitationstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, server_default='expense'),
    )
    op.create_table(
        'group_budgets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('period', budget_period, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.CheckConstraint('amount > 0', name='ck_group_budgets_amount_positive'),
        sa.CheckConstraint('start_date <= end_date', name='ck_group_budgets_date_order'),
    )
    op.create_index('ix_group_budgets_created_by', 'group_budgets', ['created_by'])

    op.create_table(
        'group_budget_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('group_budget_id', sa.Uuid(), sa.ForeignKey('group_budgets.id'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', budget_role, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('group_budget_id', 'user_id'),
    )
    op.create_index('ix_group_budget_members_group_budget_id', 'group_budget_members', ['group_budget_id'])
    op.create_index('ix_group_budget_members_user_id', 'group_budget_members', ['user_id'])

    op.create_table(
        'invitations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('group_budget_id', sa.Uuid(), sa.ForeignKey('group_budgets.id', ondelete='SET NULL'), nullable=True),
        sa.Column('invited_email', sa.String(), nullable=False),
        sa.Column('invited_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', invitation_status, nullable=False),
        sa.Column('invited_at', sa.DateTime(timezone=True)),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_invitations_group_budget_id', 'invitations', ['group_budget_id'])
    op.create_index('ix_invitations_invited_email', 'invitations', ['invited_email'])
    op.create_index(
        'uq_invitations_pending_email', 'invitations', ['group_budget_id', 'invited_email'],
        unique=True, postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True)),
        sa.Column('group_budget_id', sa.Uuid(), sa.ForeignKey('group_budgets.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_category_id', 'transactions', ['category_id'])
    op.create_index('ix_transactions_occurred_at', 'transactions', ['occurred_at'])
    op.create_index('ix_transactions_group_budget_id', 'transactions', ['group_budget_id'])


def downgrade() -> None:
    op.drop_table('transactions')
    op.drop_table('invitations')
    op.drop_table('group_budget_members')
    op.drop_table('group_budgets')
    op.drop_table('categories')
    op.drop_table('users')
    invitation_status.drop(op.get_bind(), checkfirst=True)
    budget_role.drop(op.get_bind(), checkfirst=True)
    budget_period.drop(op.get_bind(), checkfirst=True)
