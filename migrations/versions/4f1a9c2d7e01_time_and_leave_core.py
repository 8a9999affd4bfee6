"""time and leave core tables

Revision ID: 4f1a9c2d7e01
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1a9c2d7e01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _approval_columns():
    return [
        sa.Column('request_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('status', sa.String(length=24), nullable=False, index=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False, index=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('supervisor_approver_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('supervisor_approved_at', sa.DateTime(), nullable=True),
        sa.Column('supervisor_remarks', sa.Text(), nullable=True),
        sa.Column('hr_approver_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('hr_approved_at', sa.DateTime(), nullable=True),
        sa.Column('hr_remarks', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_table(
        'employment_statuses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'code', name='uq_employment_status_company_code'),
    )
    op.create_table(
        'work_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=60), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('break_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('grace_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'code', name='uq_work_schedule_company_code'),
    )
    op.create_table(
        'work_schedule_day_overrides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('work_schedule_id', sa.Integer(), sa.ForeignKey('work_schedules.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('weekday', sa.SmallInteger(), nullable=False),
        sa.Column('is_working_day', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.UniqueConstraint('work_schedule_id', 'weekday', name='uq_schedule_override_weekday'),
        sa.CheckConstraint('weekday BETWEEN 0 AND 6', name='ck_schedule_override_weekday'),
    )
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reporting_manager_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('employment_status_id', sa.Integer(), sa.ForeignKey('employment_statuses.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('work_schedule_id', sa.Integer(), sa.ForeignKey('work_schedules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('employee_number', sa.String(length=32), nullable=False),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=False),
        sa.Column('separation_date', sa.Date(), nullable=True),
        sa.Column('is_overtime_eligible', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('company_id', 'employee_number', name='uq_employee_company_number'),
        sa.UniqueConstraint('company_id', 'user_id', name='uq_employee_company_user'),
    )
    op.create_index('ix_emp_company_id', 'employees', ['company_id'])
    op.create_index('ix_emp_reporting_manager_id', 'employees', ['reporting_manager_id'])

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('allow_half_day', sa.Boolean(), nullable=False),
        sa.Column('allow_carry_over', sa.Boolean(), nullable=False),
        sa.Column('max_carry_over_days', sa.Numeric(6, 2), nullable=True),
        sa.Column('effective_from', sa.Date(), nullable=True),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('company_id', 'code', name='uq_leave_type_company_code'),
    )
    op.create_table(
        'leave_policies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id'), nullable=False, index=True),
        sa.Column('employment_status_id', sa.Integer(), sa.ForeignKey('employment_statuses.id'), nullable=False, index=True),
        sa.Column('annual_entitlement', sa.Numeric(6, 2), nullable=False),
        sa.Column('proration_method', sa.String(length=20), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    counters = [
        sa.Column(name, sa.Numeric(6, 2), nullable=False, server_default='0')
        for name in ('opening_balance', 'credits_earned', 'credits_used', 'credits_forfeited',
                     'credits_converted', 'credits_carried_over', 'current_balance',
                     'pending_requests', 'available_balance')
    ]
    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False, index=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('year', sa.Integer(), nullable=False),
        *counters,
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'leave_type_id', 'year', name='uq_leave_balance_emp_type_year'),
    )
    op.create_table(
        'leave_balance_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('leave_balance_id', sa.Integer(), sa.ForeignKey('leave_balances.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('transaction_type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(6, 2), nullable=False),
        sa.Column('running_balance', sa.Numeric(6, 2), nullable=False),
        sa.Column('reference_type', sa.String(length=30), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_half_day', sa.Boolean(), nullable=False),
        sa.Column('half_day_period', sa.String(length=2), nullable=True),
        sa.Column('total_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('balance_year', sa.Integer(), nullable=False),
        *_approval_columns(),
    )
    op.create_table(
        'overtime_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('overtime_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('hours_requested', sa.Numeric(6, 2), nullable=False),
        *_approval_columns(),
    )
    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('actual_time_in', sa.DateTime(), nullable=True),
        sa.Column('actual_time_out', sa.DateTime(), nullable=True),
        sa.Column('scheduled_time_in', sa.DateTime(), nullable=True),
        sa.Column('scheduled_time_out', sa.DateTime(), nullable=True),
        sa.Column('tardiness_mins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('undertime_mins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('overtime_hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('hours_worked', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('night_diff_hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('attendance_status', sa.String(length=20), nullable=False),
        sa.Column('approval_status', sa.String(length=20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('time_in_source', sa.String(length=12), nullable=True),
        sa.Column('time_out_source', sa.String(length=12), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date'),
    )
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=True, index=True),
        sa.Column('table_name', sa.String(length=64), nullable=False),
        sa.Column('record_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reason', sa.String(length=64), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_table_record', 'audit_logs', ['table_name', 'record_id'])


def downgrade() -> None:
    for table in ('audit_logs', 'attendance_records', 'overtime_requests', 'leave_requests',
                  'leave_balance_transactions', 'leave_balances', 'leave_policies', 'leave_types',
                  'employees', 'work_schedule_day_overrides', 'work_schedules',
                  'employment_statuses', 'users', 'companies'):
        op.drop_table(table)
