from __future__ import annotations
import logging
from typing import Any, Mapping

from repairdesk import get_db
from repairdesk.models.customer import Customer
from repairdesk.models.invoice import PaymentMethod
from repairdesk.models.product import Product
from repairdesk.models.sale import SaleLineItem, SaleTransaction
from repairdesk.services.billing import tax_rate_for
from repairdesk.services.context import RequestContext
from repairdesk.services.policy import assert_store_access, load_scoped, require_permission
from repairdesk.services.stock_ledger import adjust_stock
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.money import compute_totals
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)


def create_sale_transaction(ctx: RequestContext, data: Mapping[str, Any]) -> SaleTransaction:
    """Ring up a counter sale at the caller's active store.

    The sale row, its lines and one stock decrement per product line commit
    together. Under strict stock mode a shortage on any line rolls back the
    whole sale.
    """
    require_permission(ctx, 'pos:create')
    p = Payload(data)
    customer_id = p.optional_int('customer_id', min_value=1)
    method = p.enum('payment_method', PaymentMethod)
    payment_ref = p.optional_str('payment_ref', max_len=120)
    lines = []
    for item in p.objects('line_items', min_items=1):
        lines.append({
            'product_id': item.optional_int('product_id', min_value=1),
            'description': item.required_str('description', max_len=255),
            'quantity': item.required_int('quantity', min_value=1),
            'unit_price_cents': item.required_int('unit_price_cents', min_value=0),
        })
    p.check()

    session = get_db()
    with atomic(session):
        store_id = assert_store_access(session, None, ctx)
        if customer_id is not None:
            load_scoped(session, Customer, customer_id, ctx, 'Customer')
        for line in lines:
            if line['product_id'] is not None:
                load_scoped(session, Product, line['product_id'], ctx, 'Product')
        totals = compute_totals(((l['quantity'], l['unit_price_cents']) for l in lines), tax_rate_for(session, ctx))
        sale = SaleTransaction(
            org_id=ctx.org_id,
            store_id=store_id,
            user_id=ctx.user_id,
            customer_id=customer_id,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            payment_method=method,
            payment_ref=payment_ref,
            line_items=[SaleLineItem(**line) for line in lines],
        )
        session.add(sale)
        for line in lines:
            if line['product_id'] is not None:
                adjust_stock(session, line['product_id'], store_id, -line['quantity'], ctx.settings.stock_mode)
    logger.info('sale %s at store=%s total=%s (%d line(s))', sale.id, store_id, sale.total_cents, len(lines))
    mark_stale(create_sale_transaction, '/pos', '/inventory')
    return sale


def get_sale_transaction(ctx: RequestContext, sale_id: int) -> SaleTransaction:
    require_permission(ctx, 'pos:read')
    return load_scoped(get_db(), SaleTransaction, sale_id, ctx, 'SaleTransaction')
