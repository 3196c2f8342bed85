"""payroll initial schema: formula, roster, period, history

Revision ID: 4e1a7c2d9b30
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e1a7c2d9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(nullable=True):
    return [
        sa.Column('created_at', sa.DateTime(), nullable=nullable),
        sa.Column('updated_at', sa.DateTime(), nullable=nullable),
    ]


def upgrade() -> None:
    op.create_table(
        'salary_formulas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_rate', sa.Numeric(), nullable=False),
        sa.Column('internship_rate', sa.Numeric(), nullable=False),
        sa.Column('total_bar_amount', sa.Numeric(), nullable=False),
        sa.Column('bar_percentage', sa.Numeric(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'employees',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('shifts', sa.Numeric(), nullable=False),
        sa.Column('internship_shifts', sa.Numeric(), nullable=False),
        sa.Column('corkage_fee', sa.Numeric(), nullable=False),
        sa.Column('penalties', sa.Numeric(), nullable=False),
        sa.Column('bar_debt', sa.Numeric(), nullable=False),
        *_timestamps(nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'payroll_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('total_bar_amount', sa.Numeric(), nullable=False),
        sa.Column('bar_percentage', sa.Numeric(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'payroll_history',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('employee_name', sa.String(255), nullable=False),
        sa.Column('shifts', sa.Numeric(), nullable=False),
        sa.Column('internship_shifts', sa.Numeric(), nullable=False),
        sa.Column('corkage_fee', sa.Numeric(), nullable=False),
        sa.Column('penalties', sa.Numeric(), nullable=False),
        sa.Column('bar_debt', sa.Numeric(), nullable=False),
        sa.Column('total_salary', sa.Numeric(), nullable=False),
        sa.Column('total_bar_amount', sa.Numeric(), nullable=False),
        sa.Column('bar_percentage', sa.Numeric(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_payroll_history_period', 'payroll_history', ['period_start', 'period_end'], unique=False)
    op.create_index('idx_payroll_history_employee', 'payroll_history', ['employee_id', 'employee_name'], unique=False)
    op.create_index('idx_payroll_history_created_at', 'payroll_history', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_payroll_history_created_at', table_name='payroll_history')
    op.drop_index('idx_payroll_history_employee', table_name='payroll_history')
    op.drop_index('idx_payroll_history_period', table_name='payroll_history')
    op.drop_table('payroll_history')
    op.drop_table('payroll_periods')
    op.drop_table('employees')
    op.drop_table('salary_formulas')
