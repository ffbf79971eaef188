from __future__ import annotations
import logging
from typing import Any, List, Mapping

from sqlalchemy import select

from repairdesk import get_db
from repairdesk.models.product import Product, StockItem
from repairdesk.models.supplier import Supplier
from repairdesk.services.context import RequestContext
from repairdesk.services.policy import assert_store_access, load_scoped, require_permission
from repairdesk.services.stock_ledger import adjust_stock
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)


def create_product(ctx: RequestContext, data: Mapping[str, Any]) -> Product:
    require_permission(ctx, 'inventory:create')
    p = Payload(data)
    name = p.required_str('name', max_len=128)
    sku = p.optional_str('sku', max_len=64)
    retail = p.required_int('retail_price_cents', min_value=0)
    cost = p.optional_int('cost_price_cents', min_value=0)
    is_service = p.boolean('is_service', default=False)
    p.check()

    session = get_db()
    with atomic(session):
        product = Product(
            org_id=ctx.org_id,
            name=name,
            sku=sku,
            retail_price_cents=retail,
            cost_price_cents=cost,
            is_service=is_service,
        )
        session.add(product)
    logger.info('product %s (%s) created org=%s', product.id, product.name, ctx.org_id)
    mark_stale(create_product, '/inventory')
    return product


def update_product(ctx: RequestContext, product_id: int, data: Mapping[str, Any]) -> Product:
    """Partial update; only the fields present in ``data`` change."""
    require_permission(ctx, 'inventory:update')
    p = Payload(data)
    changes = {
        'name': p.optional_str('name', max_len=128),
        'sku': p.optional_str('sku', max_len=64),
        'retail_price_cents': p.optional_int('retail_price_cents', min_value=0),
        'cost_price_cents': p.optional_int('cost_price_cents', min_value=0),
        'is_service': p.boolean('is_service', default=None),
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes and not p.errors:
        p.fail('', 'no updatable fields given')
    p.check()

    session = get_db()
    with atomic(session):
        product = load_scoped(session, Product, product_id, ctx, 'Product', for_update=True)
        for key, value in changes.items():
            setattr(product, key, value)
    logger.info('product %s updated fields=%s', product.id, sorted(changes))
    mark_stale(update_product, '/inventory', f'/inventory/{product.id}')
    return product


def create_supplier(ctx: RequestContext, data: Mapping[str, Any]) -> Supplier:
    require_permission(ctx, 'inventory:create')
    p = Payload(data)
    name = p.required_str('name', max_len=150)
    contact_email = p.optional_email('contact_email', max_len=150)
    p.check()

    session = get_db()
    with atomic(session):
        supplier = Supplier(org_id=ctx.org_id, name=name, contact_email=contact_email, is_active=True)
        session.add(supplier)
    logger.info('supplier %s (%s) created org=%s', supplier.id, supplier.name, ctx.org_id)
    mark_stale(create_supplier, '/inventory/suppliers')
    return supplier


def adjust_stock_level(ctx: RequestContext, data: Mapping[str, Any]) -> StockItem:
    """Manual stock correction at a store of the caller's organization.

    ``store_id`` defaults to the caller's active store. The configured stock
    mode applies, so a strict-mode correction cannot take the count below zero.
    """
    require_permission(ctx, 'inventory:update')
    p = Payload(data)
    product_id = p.required_int('product_id', min_value=1)
    store_id = p.optional_int('store_id', min_value=1)
    delta = p.required_int('delta')
    if delta == 0:
        p.fail('delta', 'must not be zero')
    p.check()

    session = get_db()
    with atomic(session):
        product = load_scoped(session, Product, product_id, ctx, 'Product')
        sid = assert_store_access(session, store_id, ctx)
        item = adjust_stock(session, product.id, sid, delta, ctx.settings.stock_mode)
    logger.info('stock adjusted product=%s store=%s delta=%+d now=%s', product.id, sid, delta, item.quantity)
    mark_stale(adjust_stock_level, '/inventory', f'/inventory/{product.id}')
    return item


def get_stock_levels(ctx: RequestContext, product_id: int) -> List[StockItem]:
    require_permission(ctx, 'inventory:read')
    session = get_db()
    product = load_scoped(session, Product, product_id, ctx, 'Product')
    return list(session.execute(
        select(StockItem).where(StockItem.product_id == product.id).order_by(StockItem.store_id)
    ).scalars())
