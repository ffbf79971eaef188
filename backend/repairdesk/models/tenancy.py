from __future__ import annotations
from decimal import Decimal
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, Numeric, Enum, DateTime, func
from typing import Optional

from repairdesk.constants.permissions import Role

Base = declarative_base()


# --- Tenant scope ---
class Organization(Base):
    __tablename__ = 'organizations'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # Null falls back to the configured default tax rate
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 4), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default='GBP')
    stores = relationship('Store', back_populates='organization', cascade='all, delete-orphan')
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Store(Base):
    __tablename__ = 'stores'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    organization = relationship('Organization', back_populates='stores')


class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, native_enum=False, length=16), nullable=False, default=Role.STAFF)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
