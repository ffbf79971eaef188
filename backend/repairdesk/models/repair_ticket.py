from __future__ import annotations
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship, Session
from sqlalchemy import Integer, String, Text, Boolean, ForeignKey, DateTime, Enum, event, func
from repairdesk.errors import ImmutableRecord
from .tenancy import Base


class TicketStatus(str, PyEnum):
    RECEIVED = 'RECEIVED'
    DIAGNOSED = 'DIAGNOSED'
    WAITING_PARTS = 'WAITING_PARTS'
    IN_REPAIR = 'IN_REPAIR'
    QA = 'QA'
    READY_FOR_PICKUP = 'READY_FOR_PICKUP'
    COMPLETE = 'COMPLETE'
    CANCELLED = 'CANCELLED'


# Ordered happy path; CANCELLED sits outside it
TICKET_WORKFLOW = (
    TicketStatus.RECEIVED,
    TicketStatus.DIAGNOSED,
    TicketStatus.WAITING_PARTS,
    TicketStatus.IN_REPAIR,
    TicketStatus.QA,
    TicketStatus.READY_FOR_PICKUP,
    TicketStatus.COMPLETE,
)
TERMINAL_STATUSES = frozenset({TicketStatus.COMPLETE, TicketStatus.CANCELLED})


class TicketPriority(str, PyEnum):
    LOW = 'LOW'
    NORMAL = 'NORMAL'
    HIGH = 'HIGH'
    URGENT = 'URGENT'


class DeviceCondition(str, PyEnum):
    EXCELLENT = 'EXCELLENT'
    GOOD = 'GOOD'
    FAIR = 'FAIR'
    POOR = 'POOR'
    DAMAGED = 'DAMAGED'


class Ticket(Base):
    __tablename__ = 'tickets'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    store_id: Mapped[int] = mapped_column(ForeignKey('stores.id'), nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    device_id: Mapped[int] = mapped_column(ForeignKey('devices.id'), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[TicketPriority] = mapped_column(Enum(TicketPriority, native_enum=False, length=16), nullable=False, default=TicketPriority.NORMAL)
    condition_on_intake: Mapped[Optional[DeviceCondition]] = mapped_column(Enum(DeviceCondition, native_enum=False, length=16), nullable=True)
    intake_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[TicketStatus] = mapped_column(Enum(TicketStatus, native_enum=False, length=32), nullable=False, default=TicketStatus.RECEIVED, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    history = relationship('TicketHistory', back_populates='ticket', cascade='all, delete-orphan', order_by='TicketHistory.id')
    assignments = relationship('TicketAssignment', back_populates='ticket', cascade='all, delete-orphan', order_by='TicketAssignment.id')
    notes = relationship('TicketNote', back_populates='ticket', cascade='all, delete-orphan', order_by='TicketNote.id')
    line_items = relationship('TicketLineItem', back_populates='ticket', cascade='all, delete-orphan', order_by='TicketLineItem.id')

# Status flow: RECEIVED -> DIAGNOSED -> WAITING_PARTS -> IN_REPAIR -> QA -> READY_FOR_PICKUP -> COMPLETE
# CANCELLED reachable from any non-terminal status. completed_at set iff status == COMPLETE.


class TicketHistory(Base):
    """Append-only status log; one row per status change including creation."""
    __tablename__ = 'ticket_history'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    from_status: Mapped[Optional[TicketStatus]] = mapped_column(Enum(TicketStatus, native_enum=False, length=32), nullable=True)
    to_status: Mapped[TicketStatus] = mapped_column(Enum(TicketStatus, native_enum=False, length=32), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    ticket = relationship('Ticket', back_populates='history')


class TicketAssignment(Base):
    __tablename__ = 'ticket_assignments'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    ticket = relationship('Ticket', back_populates='assignments')


class TicketNote(Base):
    __tablename__ = 'ticket_notes'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    ticket = relationship('Ticket', back_populates='notes')


class TicketLineItem(Base):
    __tablename__ = 'ticket_line_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey('products.id'), nullable=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Labour lines never touch the stock ledger
    is_labor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ticket = relationship('Ticket', back_populates='line_items')


@event.listens_for(Session, 'before_flush')
def _guard_ticket_history(session, flush_context, instances):
    """Reject updates and direct deletes of persisted history rows.

    Rows removed together with their ticket (cascade) are allowed through.
    """
    for obj in list(session.dirty):
        if isinstance(obj, TicketHistory) and session.is_modified(obj, include_collections=False):
            raise ImmutableRecord('TicketHistory', obj.id, 'update')
    for obj in list(session.deleted):
        if isinstance(obj, TicketHistory) and obj.ticket not in session.deleted:
            raise ImmutableRecord('TicketHistory', obj.id, 'delete')
