"""Rows changed by another worker thread must be seen by the next mutation here.

Each thread owns its own scoped session; ``_on_other_thread`` runs a service
call on a fresh thread the way a second request worker would.
"""
import threading
import pytest
from flask import Flask
from sqlalchemy import select
import repairdesk
from repairdesk import get_db
from repairdesk.errors import InvalidTransition
from repairdesk.models.invoice import InvoiceStatus
from repairdesk.models.purchase_order import PurchaseOrderItem, PurchaseOrderStatus
from repairdesk.models.repair_ticket import TicketStatus
from repairdesk.services import billing, tickets
from repairdesk.services import purchase_orders as po_svc
from repairdesk.services.tickets import latest_history
from tests.test_utils_seed import seed_shop, make_ctx, ensure_product, ensure_supplier, stock_of
from tests.test_lifecycle_helpers import ticket_payload


def _on_other_thread(fn, *args):
    outcome = {}

    def run():
        try:
            fn(*args)
        except Exception as e:  # re-raised on the calling thread
            outcome['error'] = e
        finally:
            repairdesk.SessionLocal.remove()

    worker = threading.Thread(target=run)
    worker.start()
    worker.join()
    if 'error' in outcome:
        raise outcome['error']


def test_cancel_on_other_thread_keeps_ticket_terminal(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    assert tickets.get_ticket(ctx, t.id).status is TicketStatus.RECEIVED

    _on_other_thread(tickets.update_ticket_status, ctx, t.id, {'status': 'CANCELLED'})

    with pytest.raises(InvalidTransition):
        tickets.update_ticket_status(ctx, t.id, {'status': 'DIAGNOSED'})
    fresh = tickets.get_ticket(ctx, t.id)
    assert fresh.status is TicketStatus.CANCELLED
    assert [h.to_status for h in fresh.history] == [TicketStatus.RECEIVED, TicketStatus.CANCELLED]
    assert latest_history(get_db(), t.id).to_status is TicketStatus.CANCELLED


def test_history_from_status_follows_other_thread(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    tickets.get_ticket(ctx, t.id)

    _on_other_thread(tickets.update_ticket_status, ctx, t.id, {'status': 'DIAGNOSED'})

    tickets.update_ticket_status(ctx, t.id, {'status': 'WAITING_PARTS'})
    last = latest_history(get_db(), t.id)
    assert (last.from_status, last.to_status) == (TicketStatus.DIAGNOSED, TicketStatus.WAITING_PARTS)


def test_payment_after_cancel_on_other_thread_rejected(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    tickets.add_line_item(ctx, t.id, {'description': 'Labour', 'quantity': 1, 'unit_price_cents': 4000, 'is_labor': True})
    inv = billing.create_invoice_from_ticket(ctx, t.id)
    assert billing.get_invoice(ctx, inv.id).status is InvoiceStatus.DRAFT

    _on_other_thread(billing.cancel_invoice, ctx, inv.id)

    with pytest.raises(InvalidTransition):
        billing.record_payment(ctx, inv.id, {'amount_cents': 100, 'method': 'CASH'})
    assert billing.get_invoice(ctx, inv.id).payments == []


def test_receipts_from_two_threads_both_count(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    product = ensure_product(shop.org)
    supplier = ensure_supplier(shop.org)
    po = po_svc.create_purchase_order(ctx, {
        'supplier_id': supplier.id,
        'items': [{'product_id': product.id, 'quantity': 10, 'unit_cost_cents': 5}],
    })
    po_svc.submit_purchase_order(ctx, po.id)
    item_id = po.items[0].id

    _on_other_thread(po_svc.receive_purchase_order, ctx, po.id, [{'po_item_id': item_id, 'received_qty': 4}])

    po = po_svc.receive_purchase_order(ctx, po.id, [{'po_item_id': item_id, 'received_qty': 6}])
    assert po.status is PurchaseOrderStatus.RECEIVED
    stored = get_db().execute(
        select(PurchaseOrderItem.received_qty).where(PurchaseOrderItem.id == item_id)
    ).scalar_one()
    assert stored == 10
    assert stock_of(product, shop.store) == 10


def test_app_context_teardown_discards_session(app_instance: Flask):
    with app_instance.app_context():
        first = get_db()
    with app_instance.app_context():
        assert get_db() is not first
