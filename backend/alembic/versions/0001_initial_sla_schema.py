"""initial sla schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'ticketstatus': ('NEW', 'OPEN', 'IN_PROGRESS', 'PENDING', 'ON_HOLD', 'RESOLVED', 'CLOSED', 'CANCELLED'),
    'ticketpriority': ('P1', 'P2', 'P3', 'P4'),
    'coveragelevel': ('NONE', 'ON_CALL', 'FULL'),
    'holidaysupportlevel': ('NONE', 'EMERGENCY_ONLY', 'FULL'),
    'pausecondition': (
        'OUTSIDE_BUSINESS_HOURS', 'WEEKENDS', 'HOLIDAYS', 'WAITING_CUSTOMER', 'CUSTOMER_HOLD',
    ),
    'priorityscope': ('ALL', 'P1_P2', 'P1_ONLY'),
    'notificationkind': (
        'WARNING_RESPONSE', 'WARNING_RESOLUTION', 'BREACH_RESPONSE', 'BREACH_RESOLUTION',
    ),
    'actortype': ('user', 'system'),
    'authortype': ('agent', 'customer'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'support_types',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('work_days', postgresql.JSONB(), nullable=True),
        sa.Column('daily_hours', sa.Integer(), server_default='9', nullable=False),
        sa.Column('weekend_coverage', _enum('coveragelevel'), nullable=False),
        sa.Column('holiday_coverage', _enum('coveragelevel'), nullable=False),
        sa.Column('on_call_priorities', postgresql.JSONB(), nullable=True),
        sa.Column('pause_conditions', postgresql.JSONB(), nullable=True),
        sa.Column('priority_scope', _enum('priorityscope'), nullable=False),
        sa.Column('sla_enabled', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_support_types_tenant_id', 'support_types', ['tenant_id'])

    op.create_table(
        'shifts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('timezone', sa.String(), server_default='UTC', nullable=False),
        sa.Column('break_minutes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_shifts_tenant_id', 'shifts', ['tenant_id'])

    op.create_table(
        'holiday_calendars',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_holiday_calendars_tenant_id', 'holiday_calendars', ['tenant_id'])

    op.create_table(
        'holiday_dates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('calendar_id', sa.Uuid(), sa.ForeignKey('holiday_calendars.id'), nullable=False),
        sa.Column('holiday_date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('support_level', _enum('holidaysupportlevel'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_holiday_dates_calendar_id', 'holiday_dates', ['calendar_id'])

    op.create_table(
        'sla_policies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('warning_threshold', sa.Float(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sla_policies_tenant_id', 'sla_policies', ['tenant_id'])

    op.create_table(
        'sla_policy_targets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('policy_id', sa.Uuid(), sa.ForeignKey('sla_policies.id'), nullable=False),
        sa.Column('priority', _enum('ticketpriority'), nullable=False),
        sa.Column('response_minutes', sa.Integer(), nullable=False),
        sa.Column('resolution_minutes', sa.Integer(), nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('policy_id', 'priority', name='uq_sla_policy_targets_policy_priority'),
    )

    op.create_table(
        'contracts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('contract_number', sa.String(), nullable=False, unique=True),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('support_type_id', sa.Uuid(), sa.ForeignKey('support_types.id'), nullable=True),
        sa.Column('sla_policy_id', sa.Uuid(), sa.ForeignKey('sla_policies.id'), nullable=True),
        sa.Column('after_hours_multiplier', sa.Float(), server_default='1.5', nullable=False),
        sa.Column('weekend_multiplier', sa.Float(), server_default='2.0', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_contracts_tenant_id', 'contracts', ['tenant_id'])

    op.create_table(
        'contract_shifts',
        sa.Column('contract_id', sa.Uuid(), sa.ForeignKey('contracts.id'), primary_key=True),
        sa.Column('shift_id', sa.Uuid(), sa.ForeignKey('shifts.id'), primary_key=True),
    )
    op.create_table(
        'contract_holiday_calendars',
        sa.Column('contract_id', sa.Uuid(), sa.ForeignKey('contracts.id'), primary_key=True),
        sa.Column('calendar_id', sa.Uuid(), sa.ForeignKey('holiday_calendars.id'), primary_key=True),
    )

    op.create_table(
        'tickets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('ticket_number', sa.String(), nullable=False, unique=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('status', _enum('ticketstatus'), server_default='NEW', nullable=False),
        sa.Column('priority', _enum('ticketpriority'), nullable=False),
        sa.Column('contract_id', sa.Uuid(), sa.ForeignKey('contracts.id'), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tickets_tenant_id', 'tickets', ['tenant_id'])
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_index('ix_tickets_priority', 'tickets', ['priority'])
    op.create_index('ix_tickets_contract_id', 'tickets', ['contract_id'])
    # Ticket numbers come from this sequence, not from the ORM.
    op.execute("CREATE SEQUENCE IF NOT EXISTS ticket_number_seq START 1")

    op.create_table(
        'ticket_notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('author_name', sa.String(), nullable=False),
        sa.Column('author_type', _enum('authortype'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_internal', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('actor_type', _enum('actortype'), nullable=False),
        sa.Column('actor_name', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('field_changed', sa.String(), nullable=True),
        sa.Column('old_value', sa.String(), nullable=True),
        sa.Column('new_value', sa.String(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_log_ticket_id', 'audit_log', ['ticket_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])

    op.create_table(
        'sla_trackings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id'), nullable=False, unique=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('priority', _enum('ticketpriority'), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('response_minutes', sa.Integer(), nullable=False),
        sa.Column('resolution_minutes', sa.Integer(), nullable=False),
        sa.Column('warning_threshold', sa.Float(), nullable=False),
        sa.Column('on_call', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('config_snapshot', postgresql.JSONB(), nullable=False),
        sa.Column('response_deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolution_deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('breach_response', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('breach_resolution', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('warning_response_sent', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('warning_resolution_sent', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pause_reason', _enum('pausecondition'), nullable=True),
        sa.Column('paused_minutes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_evaluated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_sla_trackings_tenant_id', 'sla_trackings', ['tenant_id'])
    op.create_index('ix_sla_trackings_resolved_at', 'sla_trackings', ['resolved_at'])

    op.create_table(
        'sla_pause_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tracking_id', sa.Uuid(), sa.ForeignKey('sla_trackings.id'), nullable=False),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reason', _enum('pausecondition'), nullable=False),
        sa.Column('business_minutes', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_sla_pause_history_tracking_id', 'sla_pause_history', ['tracking_id'])

    op.create_table(
        'notification_intents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tracking_id', sa.Uuid(), sa.ForeignKey('sla_trackings.id'), nullable=False),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('kind', _enum('notificationkind'), nullable=False),
        sa.Column('record_snapshot', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_error', sa.String(), nullable=True),
        sa.Column('next_attempt_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notification_intents_tracking_id', 'notification_intents', ['tracking_id'])
    op.create_index('ix_notification_intents_dispatched_at', 'notification_intents', ['dispatched_at'])


def downgrade() -> None:
    for table in (
        'notification_intents',
        'sla_pause_history',
        'sla_trackings',
        'audit_log',
        'ticket_notes',
        'tickets',
        'contract_holiday_calendars',
        'contract_shifts',
        'contracts',
        'sla_policy_targets',
        'sla_policies',
        'holiday_dates',
        'holiday_calendars',
        'shifts',
        'support_types',
    ):
        op.drop_table(table)
    op.execute("DROP SEQUENCE IF EXISTS ticket_number_seq")
    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
