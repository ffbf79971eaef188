from decimal import Decimal
from flask import Flask
from repairdesk import get_db
from repairdesk.models.audit import AuditLog
from tests.test_utils_seed import seed_shop, ensure_product, ensure_supplier
from tests.test_lifecycle_helpers import shop_headers, ticket_payload, exercise_purchase_order_lifecycle


def _entries(user_id, actions):
    return get_db().query(AuditLog).filter(AuditLog.action.in_(actions), AuditLog.actor_user_id == user_id).all()


def test_ticket_audit_entries(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop()
    headers = shop_headers(shop)
    tid = client.post('/repairs/tickets', json=ticket_payload(shop), headers=headers).get_json()['id']
    client.post(f'/repairs/tickets/{tid}/status', json={'status': 'DIAGNOSED'}, headers=headers)
    client.post(f'/repairs/tickets/{tid}/notes', json={'content': 'hi'}, headers=headers)
    entries = _entries(shop.user.id, ['TICKET.CREATE', 'TICKET.STATUS', 'TICKET.NOTE'])
    assert {e.action for e in entries} == {'TICKET.CREATE', 'TICKET.STATUS', 'TICKET.NOTE'}
    for e in entries:
        assert e.entity == 'Ticket'
        assert e.entity_id == str(tid)
        assert e.org_id == shop.org.id
        assert e.role == 'ADMIN'
    status = next(e for e in entries if e.action == 'TICKET.STATUS')
    assert status.meta['changes']['status'] == {'before': 'RECEIVED', 'after': 'DIAGNOSED'}


def test_failed_mutation_writes_no_audit(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop()
    headers = shop_headers(shop)
    tid = client.post('/repairs/tickets', json=ticket_payload(shop), headers=headers).get_json()['id']
    resp = client.post(f'/repairs/tickets/{tid}/status', json={'status': 'COMPLETE'}, headers=headers)
    assert resp.status_code == 409
    assert _entries(shop.user.id, ['TICKET.STATUS']) == []


def test_purchase_order_and_payment_audit(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop(tax_rate=Decimal('0'))
    headers = shop_headers(shop)
    exercise_purchase_order_lifecycle(client, headers, ensure_supplier(shop.org).id, ensure_product(shop.org).id)
    receive = _entries(shop.user.id, ['PO.RECEIVE'])
    assert len(receive) == 1
    assert receive[0].meta['changes']['status'] == {'before': 'ORDERED', 'after': 'RECEIVED'}
    assert receive[0].meta['lines'] == 1
    assert {e.action for e in _entries(shop.user.id, ['PO.CREATE', 'PO.SUBMIT'])} == {'PO.CREATE', 'PO.SUBMIT'}
