"""Create payments, expenses and tax summary tables

Revision ID: 20261019_rent_tax
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_rent_tax'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create payments table
    op.create_table('payments',
        sa.Column('tenant_name', sa.String(length=200), nullable=True),
        sa.Column('property_name', sa.String(length=200), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('period_label', sa.String(length=100), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('paid_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_payment_amount_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_payment_status', 'payments', ['status'], unique=False)
    op.create_index('idx_payment_due_date', 'payments', ['due_date'], unique=False)

    # Create expenses table
    op.create_table('expenses',
        sa.Column('property_name', sa.String(length=200), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_expense_date', 'expenses', ['expense_date'], unique=False)

    # Create tax summaries table - one row per (month, year)
    op.create_table('tax_summaries',
        sa.Column('month', sa.String(length=20), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_revenue', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_utilities', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('electricity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('water', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('gas', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('maintenance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('other_expenses', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('net_income', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=9, scale=4), nullable=False),
        sa.Column('tax_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('month', 'year', name='uq_tax_summary_period')
    )
    op.create_index('idx_tax_summary_year', 'tax_summaries', ['year'], unique=False)

    # Create recompute failure log
    op.create_table('tax_recompute_failures',
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('operation', sa.String(length=10), nullable=False),
        sa.Column('period_label', sa.String(length=100), nullable=True),
        sa.Column('month', sa.String(length=20), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('error_type', sa.String(length=100), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_recompute_failure_created', 'tax_recompute_failures', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_recompute_failure_created', table_name='tax_recompute_failures')
    op.drop_table('tax_recompute_failures')
    op.drop_index('idx_tax_summary_year', table_name='tax_summaries')
    op.drop_table('tax_summaries')
    op.drop_index('idx_expense_date', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('idx_payment_due_date', table_name='payments')
    op.drop_index('idx_payment_status', table_name='payments')
    op.drop_table('payments')
