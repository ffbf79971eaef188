import pytest
from flask import Flask
from repairdesk import get_db
from repairdesk.constants.permissions import Role
from repairdesk.models.repair_ticket import TicketStatus, TicketHistory
from repairdesk.services import tickets
from repairdesk.services.context import TransitionPolicy
from repairdesk.services.tickets import latest_history
from tests.test_utils_seed import seed_shop, make_ctx, ensure_product, ensure_user, set_stock, stock_of
from tests.test_lifecycle_helpers import shop_headers, ticket_payload, exercise_ticket_workflow


def _assert_history_matches(ticket):
    assert len(ticket.history) >= 1
    assert ticket.history[-1].to_status == ticket.status
    assert latest_history(get_db(), ticket.id).to_status == ticket.status
    assert (ticket.completed_at is not None) == (ticket.status is TicketStatus.COMPLETE)


def test_create_ticket_logs_first_history_row(app_context: Flask):
    shop = seed_shop()
    t = tickets.create_ticket(make_ctx(shop), ticket_payload(shop, description='Drop damage', condition_on_intake='POOR'))
    assert t.status is TicketStatus.RECEIVED
    assert t.ticket_number.startswith('TKT-')
    assert t.store_id == shop.store.id
    assert len(t.history) == 1
    first = t.history[0]
    assert first.from_status is None
    assert first.to_status is TicketStatus.RECEIVED
    assert first.note == 'Ticket created'
    _assert_history_matches(t)


def test_ticket_number_prefix_from_settings(app_context: Flask):
    shop = seed_shop()
    t = tickets.create_ticket(make_ctx(shop, ticket_number_prefix='RPR'), ticket_payload(shop))
    assert t.ticket_number.startswith('RPR-')


def test_status_scenario_diagnose_then_cancel(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    tickets.update_ticket_status(ctx, t.id, {'status': 'DIAGNOSED', 'note': 'initial check'})
    assert len(t.history) == 2
    second = t.history[1]
    assert (second.from_status, second.to_status) == (TicketStatus.RECEIVED, TicketStatus.DIAGNOSED)
    assert second.note == 'initial check'
    tickets.update_ticket_status(ctx, t.id, {'status': 'CANCELLED'})
    assert t.status is TicketStatus.CANCELLED
    _assert_history_matches(t)
    from repairdesk.errors import InvalidTransition
    with pytest.raises(InvalidTransition):
        tickets.update_ticket_status(ctx, t.id, {'status': 'DIAGNOSED'})
    assert len(t.history) == 3


def test_complete_stamps_completed_at_and_open_policy_jumps(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop, transition_policy=TransitionPolicy.OPEN)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    tickets.update_ticket_status(ctx, t.id, {'status': 'COMPLETE'})
    assert t.status is TicketStatus.COMPLETE
    assert t.completed_at is not None
    _assert_history_matches(t)


def test_assign_and_note(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    tech = ensure_user(shop.org, role=Role.TECHNICIAN)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    tickets.assign_ticket(ctx, t.id, tech.id)
    tickets.assign_ticket(ctx, t.id, tech.id)
    assert [a.user_id for a in t.assignments] == [tech.id, tech.id]
    note = tickets.add_ticket_note(make_ctx(shop, user=tech), t.id, {'content': 'Replaced flex cable'})
    assert note.is_internal is True
    assert note.user_id == tech.id
    public = tickets.add_ticket_note(ctx, t.id, {'content': 'Ready Friday', 'is_internal': False})
    assert public.is_internal is False
    assert len(t.notes) == 2


def test_line_items_draw_and_return_stock(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    screen = ensure_product(shop.org, retail_price_cents=8000)
    set_stock(screen, shop.store, 5)
    t = tickets.create_ticket(ctx, ticket_payload(shop))
    part = tickets.add_line_item(ctx, t.id, {'product_id': screen.id, 'quantity': 2})
    assert part.unit_price_cents == 8000
    assert part.description == screen.name
    assert stock_of(screen, shop.store) == 3
    labour = tickets.add_line_item(ctx, t.id, {'product_id': screen.id, 'description': 'Fitting', 'quantity': 1, 'unit_price_cents': 2500, 'is_labor': True})
    assert stock_of(screen, shop.store) == 3
    tickets.remove_line_item(ctx, t.id, part.id)
    assert stock_of(screen, shop.store) == 5
    assert [li.id for li in t.line_items] == [labour.id]


def test_ticket_http_workflow(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop(role=Role.MANAGER)
    headers = shop_headers(shop)
    tid = exercise_ticket_workflow(client, headers, shop)
    body = client.get(f'/repairs/tickets/{tid}', headers=headers).get_json()
    assert body['status'] == 'COMPLETE'
    assert body['completed_at'] is not None
    assert len(body['history']) == 7
    assert body['history'][0]['from_status'] is None
    assert body['history'][-1]['to_status'] == 'COMPLETE'


def test_ticket_http_notes_and_line_items(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop()
    headers = shop_headers(shop)
    product = ensure_product(shop.org)
    tid = client.post('/repairs/tickets', json=ticket_payload(shop), headers=headers).get_json()['id']
    resp = client.post(f'/repairs/tickets/{tid}/notes', json={'content': 'Customer called'}, headers=headers)
    assert resp.status_code == 201
    resp = client.post(f'/repairs/tickets/{tid}/line-items', json={'product_id': product.id, 'quantity': 1}, headers=headers)
    assert resp.status_code == 201
    line_id = resp.get_json()['id']
    resp = client.post(f'/repairs/tickets/{tid}/assignments', json={'user_id': shop.user.id}, headers=headers)
    assert resp.status_code == 201
    resp = client.delete(f'/repairs/tickets/{tid}/line-items/{line_id}', headers=headers)
    assert resp.status_code == 200
    body = client.get(f'/repairs/tickets/{tid}', headers=headers).get_json()
    assert body['line_items'] == []
    assert len(body['notes']) == 1
    assert body['assignments'][0]['user_id'] == shop.user.id


def test_history_rows_are_append_only(app_context: Flask):
    from repairdesk.errors import ImmutableRecord
    shop = seed_shop()
    t = tickets.create_ticket(make_ctx(shop), ticket_payload(shop))
    session = get_db()
    row = session.get(TicketHistory, t.history[0].id)
    row.note = 'rewritten'
    with pytest.raises(ImmutableRecord):
        session.flush()
    session.rollback()
    row = session.get(TicketHistory, t.history[0].id)
    session.delete(row)
    with pytest.raises(ImmutableRecord):
        session.flush()
    session.rollback()
    assert session.get(TicketHistory, t.history[0].id).note == 'Ticket created'


def test_deleting_ticket_cascades_history(app_context: Flask):
    shop = seed_shop()
    t = tickets.create_ticket(make_ctx(shop), ticket_payload(shop))
    history_id = t.history[0].id
    session = get_db()
    session.delete(t)
    session.commit()
    assert session.get(TicketHistory, history_id) is None
