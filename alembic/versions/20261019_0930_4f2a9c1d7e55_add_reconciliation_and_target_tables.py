"""add_reconciliation_and_target_tables

Revision ID: 4f2a9c1d7e55
Revises:
Create Date: 2026-10-19 09:30:12.418203
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic
revision: str = '4f2a9c1d7e55'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Apply migration: add_reconciliation_and_target_tables"""
    # Bank balance snapshots (append-only)
    op.create_table(
        'bank_balance_snapshots',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('workspace_id', sa.Uuid(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False, comment='When the real balance was declared'),
        sa.Column('real_balance', sa.Numeric(15, 2), nullable=False, comment='Bank balance reported by the user'),
        sa.Column('theoretical_balance', sa.Numeric(15, 2), nullable=False, comment='Balance reconstructed from collections and expenses'),
        sa.Column('difference', sa.Numeric(15, 2), nullable=False, comment='real_balance - theoretical_balance'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('recorded_via', sa.String(length=20), server_default='app', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_bank_balance_snapshots_workspace_recorded',
        'bank_balance_snapshots',
        ['workspace_id', 'recorded_at'],
        unique=False,
    )

    # One streak row per (workspace, streak type)
    op.create_table(
        'reconciliation_streaks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('workspace_id', sa.Uuid(), nullable=False),
        sa.Column('streak_type', sa.String(length=30), server_default='conciliacion', nullable=False),
        sa.Column('current_weeks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('record_weeks', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('streak_started_on', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'streak_type', name='uq_reconciliation_streaks_workspace_type'),
    )

    # Monthly targets keyed by the first day of the month
    op.create_table(
        'monthly_targets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('workspace_id', sa.Uuid(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False, comment='First day of the target month'),
        sa.Column('sales_target', sa.Numeric(15, 2), nullable=True),
        sa.Column('collection_target', sa.Numeric(15, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'period_start', name='uq_monthly_targets_workspace_period'),
    )
    op.create_index(
        'ix_monthly_targets_workspace_period',
        'monthly_targets',
        ['workspace_id', 'period_start'],
        unique=False,
    )


def downgrade() -> None:
    """Revert migration: add_reconciliation_and_target_tables"""
    op.drop_index('ix_monthly_targets_workspace_period', table_name='monthly_targets')
    op.drop_table('monthly_targets')
    op.drop_table('reconciliation_streaks')
    op.drop_index('ix_bank_balance_snapshots_workspace_recorded', table_name='bank_balance_snapshots')
    op.drop_table('bank_balance_snapshots')
