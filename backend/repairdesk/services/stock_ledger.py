"""Per-(product, store) stock counters.

``adjust_stock`` is the single write primitive shared by POS sales, purchase
order receipt and ticket line items. It never commits; callers run it inside
their own unit of work so the counter moves together with the business rows.

Counter arithmetic happens in SQL (``quantity = quantity + :delta``), so two
concurrent adjustments of the same pair both apply. Nothing serializes a
read-decide-write sequence across requests.
"""
from __future__ import annotations
import logging
from typing import Optional
from sqlalchemy import select, update
from repairdesk.errors import InsufficientStock
from repairdesk.models.product import StockItem
from repairdesk.services.context import StockMode

logger = logging.getLogger(__name__)


def _load(session, product_id: int, store_id: int) -> Optional[StockItem]:
    return session.execute(
        select(StockItem)
        .where(StockItem.product_id == product_id, StockItem.store_id == store_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def stock_level(session, product_id: int, store_id: int) -> int:
    qty = session.execute(
        select(StockItem.quantity).where(StockItem.product_id == product_id, StockItem.store_id == store_id)
    ).scalar_one_or_none()
    return qty or 0


def adjust_stock(session, product_id: int, store_id: int, delta: int, mode: StockMode = StockMode.PERMISSIVE) -> Optional[StockItem]:
    """Move the counter for (product_id, store_id) by ``delta``.

    Existing row: atomic increment/decrement. Missing row: created with
    ``max(0, delta)``. In STRICT mode a decrement that would leave the counter
    below zero (or hits a missing row) raises InsufficientStock and writes
    nothing. ``delta == 0`` is a no-op and returns the current row, if any.
    """
    if delta == 0:
        return _load(session, product_id, store_id)
    session.flush()
    stmt = (
        update(StockItem)
        .where(StockItem.product_id == product_id, StockItem.store_id == store_id)
        .values(quantity=StockItem.quantity + delta)
    )
    guarded = mode is StockMode.STRICT and delta < 0
    if guarded:
        stmt = stmt.where(StockItem.quantity + delta >= 0)
    result = session.execute(stmt.execution_options(synchronize_session=False))
    item = _load(session, product_id, store_id)
    if result.rowcount:
        logger.debug('stock product=%s store=%s delta=%+d -> %s', product_id, store_id, delta, item.quantity)
        return item
    if guarded:
        raise InsufficientStock(product_id, store_id, -delta, item.quantity if item else None)
    item = StockItem(product_id=product_id, store_id=store_id, quantity=max(0, delta))
    session.add(item)
    session.flush()
    logger.debug('stock product=%s store=%s created at %s', product_id, store_id, item.quantity)
    return item


__all__ = ['adjust_stock', 'stock_level']
