from __future__ import annotations
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, ForeignKey, DateTime, Enum, text
from typing import Optional

from .tenancy import Base


class PurchaseOrderStatus(str, PyEnum):
    DRAFT = 'DRAFT'
    ORDERED = 'ORDERED'
    PARTIAL_RECEIVED = 'PARTIAL_RECEIVED'
    RECEIVED = 'RECEIVED'
    CANCELLED = 'CANCELLED'


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), index=True, nullable=False)
    # Receiving store for every item on the order
    store_id: Mapped[int] = mapped_column(ForeignKey('stores.id'), index=True, nullable=False)
    supplier_id: Mapped[int] = mapped_column(ForeignKey('suppliers.id'), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[PurchaseOrderStatus] = mapped_column(Enum(PurchaseOrderStatus, native_enum=False, length=32), nullable=False, default=PurchaseOrderStatus.DRAFT, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    ordered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    items = relationship('PurchaseOrderItem', back_populates='purchase_order', cascade='all, delete-orphan', order_by='PurchaseOrderItem.id')


class PurchaseOrderItem(Base):
    __tablename__ = 'purchase_order_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    purchase_order_id: Mapped[int] = mapped_column(ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Cumulative; only ever incremented
    received_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchase_order = relationship('PurchaseOrder', back_populates='items')

    @property
    def is_fully_received(self) -> bool:
        return self.received_qty >= self.quantity
