from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, ForeignKey, DateTime, Numeric, Enum, func
from .tenancy import Base


class InvoiceStatus(str, PyEnum):
    DRAFT = 'DRAFT'
    SENT = 'SENT'
    PAID = 'PAID'
    OVERDUE = 'OVERDUE'
    CANCELLED = 'CANCELLED'


class PaymentMethod(str, PyEnum):
    CASH = 'CASH'
    CARD = 'CARD'
    BANK_TRANSFER = 'BANK_TRANSFER'
    OTHER = 'OTHER'


class Invoice(Base):
    __tablename__ = 'invoices'
    # Status lifecycle: DRAFT -> SENT -> (OVERDUE) -> PAID; CANCELLED from any unpaid state
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), index=True, nullable=False)
    store_id: Mapped[int] = mapped_column(ForeignKey('stores.id'), index=True, nullable=False)
    ticket_id: Mapped[Optional[int]] = mapped_column(ForeignKey('tickets.id'), nullable=True, index=True)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey('customers.id'), nullable=True)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[InvoiceStatus] = mapped_column(Enum(InvoiceStatus, native_enum=False, length=16), nullable=False, default=InvoiceStatus.DRAFT, index=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    payments = relationship('Payment', back_populates='invoice', cascade='all, delete-orphan', order_by='Payment.id')


class Payment(Base):
    __tablename__ = 'payments'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False, index=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(Enum(PaymentMethod, native_enum=False, length=16), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    invoice = relationship('Invoice', back_populates='payments')

__all__ = ["Invoice", "Payment", "InvoiceStatus", "PaymentMethod"]
