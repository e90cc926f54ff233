from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Float, DateTime, JSON, ForeignKey, CheckConstraint
from repairdesk.utils.timestamps import utcnow
from .base import Base
from .customer import Customer
from .technician import Technician


def _in_clause(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class RepairTicket(Base):
    __tablename__ = 'tickets'
    ID_PREFIX = 'RPR'
    # Status constants, in workflow order
    STATUS_RECEIVED = 'received'
    STATUS_DIAGNOSED = 'diagnosed'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_AWAITING_PARTS = 'awaiting_parts'
    STATUS_TESTING = 'testing'
    STATUS_COMPLETED = 'completed'
    STATUS_READY_FOR_PICKUP = 'ready_for_pickup'
    STATUS_PICKED_UP = 'picked_up'
    STATUS_CANCELLED = 'cancelled'
    ALL_STATUSES = (
        STATUS_RECEIVED, STATUS_DIAGNOSED, STATUS_IN_PROGRESS, STATUS_AWAITING_PARTS, STATUS_TESTING,
        STATUS_COMPLETED, STATUS_READY_FOR_PICKUP, STATUS_PICKED_UP, STATUS_CANCELLED,
    )
    CLOSED_STATUSES = (STATUS_COMPLETED, STATUS_PICKED_UP, STATUS_CANCELLED)
    FINISHED_STATUSES = (STATUS_COMPLETED, STATUS_PICKED_UP)
    OPEN_WORKFLOW_STATUSES = ALL_STATUSES[:5]
    PICKUP_STATUSES = (STATUS_READY_FOR_PICKUP, STATUS_PICKED_UP)

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_URGENT = 'urgent'
    ALL_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT)

    ALL_GRADES = ('excellent', 'good', 'fair', 'poor', 'damaged')

    __table_args__ = (
        CheckConstraint(_in_clause('status', ALL_STATUSES), name='ck_tickets_status'),
        CheckConstraint(_in_clause('priority', ALL_PRIORITIES), name='ck_tickets_priority'),
        CheckConstraint('grade IS NULL OR ' + _in_clause('grade', ALL_GRADES), name='ck_tickets_grade'),
    )

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False, index=True)
    device_type: Mapped[str] = mapped_column(String(80), nullable=False)
    device_model: Mapped[str] = mapped_column(String(120), nullable=False)
    serial_number: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    estimated_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    actual_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_RECEIVED, index=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default=PRIORITY_MEDIUM, index=True)
    grade: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    grade_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    technician_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True, index=True)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Read-time projections of the denormalized display names
    customer: Mapped[Optional[Customer]] = relationship(Customer, lazy='joined', viewonly=True)
    technician: Mapped[Optional[Technician]] = relationship(Technician, lazy='joined', viewonly=True)


class TicketSequence(Base):
    """High-water mark of issued ticket numbers so deleted ids are never handed out again."""
    __tablename__ = 'ticket_sequence'
    name: Mapped[str] = mapped_column(String(16), primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

# Status flow: received -> diagnosed -> in_progress -> awaiting_parts -> testing -> completed
#   -> ready_for_pickup -> picked_up (cancelled as alternative terminal). Any status may be set
#   directly; the store only stamps completed_at.

__all__ = ["RepairTicket", "TicketSequence"]
