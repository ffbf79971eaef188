"""Purchase order lifecycle and goods receipt.

    DRAFT -> ORDERED -> PARTIAL_RECEIVED -> RECEIVED
    DRAFT | ORDERED -> CANCELLED

Receipt is the only path that moves a PO past ORDERED: each received line bumps
its cumulative ``received_qty`` and the stock counter at the PO's store, both in
SQL, then the status is recomputed from the stored items.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from sqlalchemy import select, update

from repairdesk import get_db
from repairdesk.errors import NotFound
from repairdesk.models.product import Product
from repairdesk.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus as POS
from repairdesk.models.supplier import Supplier
from repairdesk.services.context import RequestContext
from repairdesk.services.numbering import purchase_order_number
from repairdesk.services.policy import assert_store_access, load_scoped, require_permission
from repairdesk.services.stock_ledger import adjust_stock
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.fsm import TransitionValidator
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)

PO_FSM = TransitionValidator('PurchaseOrder', {
    POS.DRAFT: {POS.ORDERED, POS.CANCELLED},
    POS.ORDERED: {POS.PARTIAL_RECEIVED, POS.RECEIVED, POS.CANCELLED},
    POS.PARTIAL_RECEIVED: {POS.PARTIAL_RECEIVED, POS.RECEIVED},
    POS.RECEIVED: set(),
    POS.CANCELLED: set(),
})

_PO_PATHS = ('/inventory/purchase-orders',)


def _now():
    return datetime.now(timezone.utc)


def create_purchase_order(ctx: RequestContext, data: Mapping[str, Any]) -> PurchaseOrder:
    require_permission(ctx, 'inventory:create')
    p = Payload(data)
    supplier_id = p.required_int('supplier_id', min_value=1)
    notes = p.optional_str('notes')
    lines = []
    for item in p.objects('items', min_items=1):
        lines.append((
            item.required_int('product_id', min_value=1),
            item.required_int('quantity', min_value=1),
            item.required_int('unit_cost_cents', min_value=0),
        ))
    p.check()

    session = get_db()
    with atomic(session):
        store_id = assert_store_access(session, None, ctx)
        supplier = load_scoped(session, Supplier, supplier_id, ctx, 'Supplier')
        po = PurchaseOrder(
            order_number=purchase_order_number(session),
            org_id=ctx.org_id,
            store_id=store_id,
            supplier_id=supplier.id,
            notes=notes,
            status=POS.DRAFT,
            created_by=ctx.user_id,
        )
        for product_id, quantity, unit_cost in lines:
            product = load_scoped(session, Product, product_id, ctx, 'Product')
            po.items.append(PurchaseOrderItem(product_id=product.id, quantity=quantity, unit_cost_cents=unit_cost, received_qty=0))
        po.total_cost_cents = sum(i.quantity * i.unit_cost_cents for i in po.items)
        session.add(po)
    logger.info('purchase order %s created supplier=%s total=%s', po.order_number, supplier.id, po.total_cost_cents)
    mark_stale(create_purchase_order, *_PO_PATHS)
    return po


def submit_purchase_order(ctx: RequestContext, po_id: int) -> PurchaseOrder:
    require_permission(ctx, 'inventory:update')
    session = get_db()
    with atomic(session):
        po = load_scoped(session, PurchaseOrder, po_id, ctx, 'PurchaseOrder', for_update=True)
        PO_FSM.assert_can_transition(po.status, POS.ORDERED)
        po.status = POS.ORDERED
        po.ordered_at = _now()
    logger.info('purchase order %s submitted', po.order_number)
    mark_stale(submit_purchase_order, *_PO_PATHS, f'/inventory/purchase-orders/{po.id}')
    return po


def receive_purchase_order(ctx: RequestContext, po_id: int, items: Iterable[Mapping[str, Any]]) -> PurchaseOrder:
    """Book received quantities against PO lines.

    ``items`` is a list of ``{po_item_id, received_qty}``. Quantities add to
    what was already received, so the same receipt submitted twice counts
    twice. Over-receipt is accepted.
    """
    require_permission(ctx, 'inventory:update')
    p = Payload({'items': items})
    receipts = []
    for item in p.objects('items', min_items=1):
        receipts.append((
            item.required_int('po_item_id', min_value=1),
            item.required_int('received_qty', min_value=1),
        ))
    p.check()

    session = get_db()
    with atomic(session):
        po = load_scoped(session, PurchaseOrder, po_id, ctx, 'PurchaseOrder', for_update=True)
        # receivable iff RECEIVED is reachable; the final status is decided below
        PO_FSM.assert_can_transition(po.status, POS.RECEIVED)
        by_id = {i.id: i for i in po.items}
        for po_item_id, qty in receipts:
            line = by_id.get(po_item_id)
            if line is None:
                raise NotFound('PurchaseOrderItem', po_item_id)
            session.execute(
                update(PurchaseOrderItem)
                .where(PurchaseOrderItem.id == line.id)
                .values(received_qty=PurchaseOrderItem.received_qty + qty)
                .execution_options(synchronize_session=False)
            )
            adjust_stock(session, line.product_id, po.store_id, qty, ctx.settings.stock_mode)
        # recompute from the stored counters, concurrent receipts included
        items = session.execute(
            select(PurchaseOrderItem)
            .where(PurchaseOrderItem.purchase_order_id == po.id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        if all(i.is_fully_received for i in items):
            po.status = POS.RECEIVED
            po.received_at = _now()
        else:
            po.status = POS.PARTIAL_RECEIVED
    logger.info('purchase order %s receipt booked (%d line(s)) -> %s', po.order_number, len(receipts), po.status.value)
    mark_stale(receive_purchase_order, *_PO_PATHS, f'/inventory/purchase-orders/{po.id}', '/inventory')
    return po


def cancel_purchase_order(ctx: RequestContext, po_id: int) -> PurchaseOrder:
    require_permission(ctx, 'inventory:update')
    session = get_db()
    with atomic(session):
        po = load_scoped(session, PurchaseOrder, po_id, ctx, 'PurchaseOrder', for_update=True)
        PO_FSM.assert_can_transition(po.status, POS.CANCELLED)
        po.status = POS.CANCELLED
    logger.info('purchase order %s cancelled', po.order_number)
    mark_stale(cancel_purchase_order, *_PO_PATHS, f'/inventory/purchase-orders/{po.id}')
    return po


def get_purchase_order(ctx: RequestContext, po_id: int) -> PurchaseOrder:
    require_permission(ctx, 'inventory:read')
    return load_scoped(get_db(), PurchaseOrder, po_id, ctx, 'PurchaseOrder')
