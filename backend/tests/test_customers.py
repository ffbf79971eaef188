import pytest
from flask import Flask
from repairdesk.constants.permissions import Role
from repairdesk.errors import NotFound, Unauthorized, ValidationError
from repairdesk.services import customers, inventory
from tests.test_utils_seed import seed_shop, make_ctx
from tests.test_lifecycle_helpers import shop_headers, create_resource_and_assert, exercise_purchase_order_lifecycle


def test_create_customer_and_device(app_context: Flask):
    shop = seed_shop(role=Role.STAFF)
    ctx = make_ctx(shop)
    c = customers.create_customer(ctx, {'first_name': 'Ada', 'last_name': 'Byron', 'email': '', 'phone': '0700 900123'})
    assert c.org_id == shop.org.id
    assert c.email is None
    d = customers.create_device(ctx, c.id, {'device_type': 'Laptop', 'brand': 'Acme', 'serial_number': 'SN-1'})
    assert (d.customer_id, d.org_id) == (c.id, shop.org.id)
    assert [x.id for x in customers.get_customer(ctx, c.id).devices] == [d.id]


def test_customer_validation(app_context: Flask):
    ctx = make_ctx(seed_shop())
    with pytest.raises(ValidationError) as exc:
        customers.create_customer(ctx, {'first_name': ' ', 'email': 'nobody'})
    assert {e['field'] for e in exc.value.errors} == {'first_name', 'last_name', 'email'}


def test_device_needs_customer_in_same_org(app_context: Flask):
    shop, other = seed_shop(), seed_shop()
    with pytest.raises(NotFound):
        customers.create_device(make_ctx(shop), other.customer.id, {'device_type': 'Phone'})


def test_technician_cannot_register_customers(app_context: Flask):
    ctx = make_ctx(seed_shop(role=Role.TECHNICIAN))
    with pytest.raises(Unauthorized):
        customers.create_customer(ctx, {'first_name': 'A', 'last_name': 'B'})
    with pytest.raises(Unauthorized):
        inventory.create_supplier(ctx, {'name': 'Parts Ltd'})


def test_supplier_and_product_update(app_context: Flask):
    shop = seed_shop()
    ctx = make_ctx(shop)
    s = inventory.create_supplier(ctx, {'name': 'Parts Ltd', 'contact_email': 'sales@parts.test'})
    assert (s.org_id, s.is_active) == (shop.org.id, True)
    p = inventory.create_product(ctx, {'name': 'Screen', 'retail_price_cents': 9000})
    inventory.update_product(ctx, p.id, {'retail_price_cents': 9500, 'is_service': False})
    assert (p.name, p.retail_price_cents, p.is_service) == ('Screen', 9500, False)
    with pytest.raises(ValidationError):
        inventory.update_product(ctx, p.id, {})
    with pytest.raises(NotFound):
        inventory.update_product(make_ctx(seed_shop()), p.id, {'name': 'Stolen'})


def test_intake_then_ticket_and_purchase_order_over_http(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop()
    headers = shop_headers(shop)
    customer = create_resource_and_assert(client, '/customers', {'first_name': 'Ada', 'last_name': 'Byron'}, headers)
    device = create_resource_and_assert(client, f"/customers/{customer['id']}/devices", {'device_type': 'Phone', 'model': 'X2'}, headers)
    assert device['customer_id'] == customer['id']
    create_resource_and_assert(client, '/repairs/tickets', {
        'customer_id': customer['id'], 'device_id': device['id'], 'title': 'No power', 'priority': 'HIGH',
    }, headers, expected_initial_status='RECEIVED')

    supplier = create_resource_and_assert(client, '/inventory/suppliers', {'name': 'Parts Ltd'}, headers)
    product = create_resource_and_assert(client, '/inventory/products', {'name': 'Battery', 'retail_price_cents': 2500}, headers)
    resp = client.patch(f"/inventory/products/{product['id']}", json={'cost_price_cents': 1200}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['cost_price_cents'] == 1200
    exercise_purchase_order_lifecycle(client, headers, supplier['id'], product['id'], quantity=4)

    body = client.get(f"/customers/{customer['id']}", headers=headers).get_json()
    assert [d['id'] for d in body['devices']] == [device['id']]
    resp = client.post('/customers', json={'first_name': 'A', 'last_name': 'B'}, headers=shop_headers(shop, role=Role.TECHNICIAN))
    assert resp.status_code == 403
