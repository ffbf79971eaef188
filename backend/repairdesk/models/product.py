from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, ForeignKey, DateTime, UniqueConstraint, text
from typing import Optional

from .tenancy import Base


class Product(Base):
    """Store-independent catalogue entry; per-store counts live in StockItem."""
    __tablename__ = 'products'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    retail_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_price_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_service: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))


class StockItem(Base):
    __tablename__ = 'stock_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    store_id: Mapped[int] = mapped_column(ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    # Non-negative by intent only; permissive stock mode lets it go below zero
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    __table_args__ = (UniqueConstraint('product_id', 'store_id', name='uq_stock_product_store'),)
