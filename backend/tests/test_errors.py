from flask import Flask
from repairdesk.errors import InsufficientStock, InvalidTransition, NotFound, ValidationError
from tests.test_utils_seed import seed_shop
from tests.test_lifecycle_helpers import shop_headers


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}


def test_domain_error_bodies():
    assert NotFound('Ticket', 7).to_dict() == {'status': 404, 'title': 'Not Found', 'detail': 'Ticket 7 not found'}
    body = ValidationError([{'field': 'title', 'message': 'is required'}]).to_dict()
    assert body['status'] == 400
    assert body['errors'] == [{'field': 'title', 'message': 'is required'}]
    assert InvalidTransition('Ticket', 'QA', 'RECEIVED').status == 409
    assert InsufficientStock(1, 2, 5, None).to_dict()['detail'].endswith('requested 5, available 0')


def test_validation_error_over_http(app_context: Flask):
    client = app_context.test_client()
    shop = seed_shop()
    resp = client.post('/repairs/tickets', json={'title': 'No refs'}, headers=shop_headers(shop))
    assert resp.status_code == 400
    body = resp.get_json()['error']
    assert body['title'] == 'Validation Failed'
    assert {'customer_id', 'device_id', 'priority'} <= {e['field'] for e in body['errors']}


def test_internal_error_shape(app_context: Flask, monkeypatch):
    client = app_context.test_client()
    shop = seed_shop()
    import repairdesk.routes.sales as sales_routes

    def boom(ctx, sale_id):
        raise RuntimeError('explode')
    monkeypatch.setattr(sales_routes.svc, 'get_sale_transaction', boom)
    resp = client.get('/sales/transactions/1', headers=shop_headers(shop))
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
