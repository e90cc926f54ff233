"""customers, technicians, tickets and the ticket number watermark

Revision ID: 0001_initial_repairdesk
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = '0001_initial_repairdesk'
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ('received', 'diagnosed', 'in_progress', 'awaiting_parts', 'testing',
            'completed', 'ready_for_pickup', 'picked_up', 'cancelled')
PRIORITIES = ('low', 'medium', 'high', 'urgent')
GRADES = ('excellent', 'good', 'fair', 'poor', 'damaged')


def _in_clause(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)

    if not insp.has_table('customers'):
        op.create_table('customers',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=150), nullable=False),
            sa.Column('email', sa.String(length=150), nullable=False),
            sa.Column('phone', sa.String(length=40), nullable=False),
            sa.Column('address', sa.String(length=255), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('ix_customers_name', 'customers', ['name'])
        op.create_index('ix_customers_email', 'customers', ['email'])
        op.create_index('ix_customers_created_at', 'customers', ['created_at'])

    if not insp.has_table('technicians'):
        op.create_table('technicians',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=150), nullable=False),
            sa.Column('email', sa.String(length=150), nullable=False),
            sa.Column('specialties', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('ix_technicians_name', 'technicians', ['name'])

    if not insp.has_table('tickets'):
        op.create_table('tickets',
            sa.Column('id', sa.String(length=16), primary_key=True),
            sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False),
            sa.Column('device_type', sa.String(length=80), nullable=False),
            sa.Column('device_model', sa.String(length=120), nullable=False),
            sa.Column('serial_number', sa.String(length=120), nullable=True),
            sa.Column('issue_description', sa.Text(), nullable=False),
            sa.Column('estimated_cost', sa.Float(), nullable=False, server_default='0'),
            sa.Column('actual_cost', sa.Float(), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False, server_default='received'),
            sa.Column('priority', sa.String(length=16), nullable=False, server_default='medium'),
            sa.Column('grade', sa.String(length=16), nullable=True),
            sa.Column('grade_notes', sa.Text(), nullable=True),
            sa.Column('technician_id', sa.String(length=36), sa.ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True),
            sa.Column('images', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint(_in_clause('status', STATUSES), name='ck_tickets_status'),
            sa.CheckConstraint(_in_clause('priority', PRIORITIES), name='ck_tickets_priority'),
            sa.CheckConstraint('grade IS NULL OR ' + _in_clause('grade', GRADES), name='ck_tickets_grade'),
        )
        op.create_index('ix_tickets_customer_id', 'tickets', ['customer_id'])
        op.create_index('ix_tickets_technician_id', 'tickets', ['technician_id'])
        op.create_index('ix_tickets_status', 'tickets', ['status'])
        op.create_index('ix_tickets_priority', 'tickets', ['priority'])
        op.create_index('ix_tickets_created_at', 'tickets', ['created_at'])

    if not insp.has_table('ticket_sequence'):
        op.create_table('ticket_sequence',
            sa.Column('name', sa.String(length=16), primary_key=True),
            sa.Column('last_number', sa.Integer(), nullable=False, server_default='0'),
        )


def downgrade():
    op.drop_table('ticket_sequence')
    for ix in ('ix_tickets_created_at', 'ix_tickets_priority', 'ix_tickets_status',
               'ix_tickets_technician_id', 'ix_tickets_customer_id'):
        op.drop_index(ix, table_name='tickets')
    op.drop_table('tickets')
    op.drop_index('ix_technicians_name', table_name='technicians')
    op.drop_table('technicians')
    for ix in ('ix_customers_created_at', 'ix_customers_email', 'ix_customers_name'):
        op.drop_index(ix, table_name='customers')
    op.drop_table('customers')
