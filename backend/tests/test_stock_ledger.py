import pytest
from flask import Flask
from repairdesk import get_db
from repairdesk.errors import InsufficientStock, NotFound, ValidationError
from repairdesk.services import inventory
from repairdesk.services.context import StockMode
from repairdesk.services.stock_ledger import adjust_stock, stock_level
from repairdesk.services.unit_of_work import atomic
from tests.test_utils_seed import seed_shop, make_ctx, ensure_product, ensure_store, set_stock, stock_of
from tests.test_lifecycle_helpers import shop_headers


def test_missing_row_created_with_floor(app_context: Flask):
    shop = seed_shop()
    product = ensure_product(shop.org)
    session = get_db()
    with atomic(session):
        item = adjust_stock(session, product.id, shop.store.id, -3)
    assert item.quantity == 0
    with atomic(session):
        adjust_stock(session, product.id, shop.store.id, 7)
    assert stock_of(product, shop.store) == 7


def test_permissive_mode_goes_negative(app_context: Flask):
    shop = seed_shop()
    product = ensure_product(shop.org)
    set_stock(product, shop.store, 2)
    session = get_db()
    with atomic(session):
        item = adjust_stock(session, product.id, shop.store.id, -5, StockMode.PERMISSIVE)
    assert item.quantity == -3


def test_strict_mode_rejects_oversell(app_context: Flask):
    shop = seed_shop()
    product = ensure_product(shop.org)
    set_stock(product, shop.store, 2)
    session = get_db()
    with pytest.raises(InsufficientStock) as exc:
        with atomic(session):
            adjust_stock(session, product.id, shop.store.id, -3, StockMode.STRICT)
    assert exc.value.available == 2
    assert stock_of(product, shop.store) == 2
    with atomic(session):
        adjust_stock(session, product.id, shop.store.id, -2, StockMode.STRICT)
    assert stock_of(product, shop.store) == 0


def test_strict_mode_missing_row(app_context: Flask):
    shop = seed_shop()
    product = ensure_product(shop.org)
    session = get_db()
    with pytest.raises(InsufficientStock):
        with atomic(session):
            adjust_stock(session, product.id, shop.store.id, -1, StockMode.STRICT)
    assert stock_of(product, shop.store) is None


def test_zero_delta_is_noop(app_context: Flask):
    shop = seed_shop()
    product = ensure_product(shop.org)
    session = get_db()
    assert adjust_stock(session, product.id, shop.store.id, 0) is None
    assert stock_level(session, product.id, shop.store.id) == 0


def test_counters_are_per_store(app_context: Flask):
    shop = seed_shop()
    annex = ensure_store(shop.org, 'Annex')
    product = ensure_product(shop.org)
    ctx = make_ctx(shop)
    inventory.adjust_stock_level(ctx, {'product_id': product.id, 'delta': 4})
    inventory.adjust_stock_level(ctx, {'product_id': product.id, 'store_id': annex.id, 'delta': 9})
    levels = {s.store_id: s.quantity for s in inventory.get_stock_levels(ctx, product.id)}
    assert levels == {shop.store.id: 4, annex.id: 9}


def test_adjust_validates_input_and_scope(app_context: Flask):
    shop = seed_shop()
    other = seed_shop()
    product = ensure_product(shop.org)
    ctx = make_ctx(shop)
    with pytest.raises(ValidationError):
        inventory.adjust_stock_level(ctx, {'product_id': product.id, 'delta': 0})
    with pytest.raises(NotFound):
        inventory.adjust_stock_level(ctx, {'product_id': product.id, 'store_id': other.store.id, 'delta': 1})


def test_inventory_http(app_context: Flask, monkeypatch):
    client = app_context.test_client()
    shop = seed_shop()
    headers = shop_headers(shop)
    resp = client.post('/inventory/products', json={'name': 'Battery', 'retail_price_cents': 3999, 'sku': 'BAT-1'}, headers=headers)
    assert resp.status_code == 201
    pid = resp.get_json()['id']
    resp = client.post('/inventory/stock/adjust', json={'product_id': pid, 'delta': 3}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['quantity'] == 3
    monkeypatch.setitem(app_context.config, 'STOCK_MODE', 'strict')
    resp = client.post('/inventory/stock/adjust', json={'product_id': pid, 'delta': -4}, headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()['error']['product_id'] == pid
    body = client.get(f'/inventory/products/{pid}/stock', headers=headers).get_json()
    assert body['total'] == 3
