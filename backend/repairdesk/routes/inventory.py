from __future__ import annotations
from flask import Blueprint, request
from repairdesk import get_db
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.product import Product, StockItem
from repairdesk.models.supplier import Supplier
from repairdesk.services import inventory as svc

inv_bp = Blueprint('inventory', __name__)


@inv_bp.post('/products')
@require_permissions('inventory:create')
@audit_log('INV.PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['name', 'sku', 'retail_price_cents'])
def create_product():
    p = svc.create_product(current_context(), request.get_json(silent=True) or {})
    return _product_json(p), 201


@inv_bp.patch('/products/<int:product_id>')
@require_permissions('inventory:update')
@audit_log('INV.PRODUCT.UPDATE', entity='Product', entity_id_key='id', diff_keys=['name', 'sku', 'retail_price_cents', 'cost_price_cents', 'is_service'],
           pre_fetch=lambda a, kw: _prefetch_product(kw.get('product_id')))
def update_product(product_id: int):
    p = svc.update_product(current_context(), product_id, request.get_json(silent=True) or {})
    return _product_json(p)


@inv_bp.post('/suppliers')
@require_permissions('inventory:create')
@audit_log('INV.SUPPLIER.CREATE', entity='Supplier', entity_id_key='id', meta_keys=['name'])
def create_supplier():
    s = svc.create_supplier(current_context(), request.get_json(silent=True) or {})
    return _supplier_json(s), 201


@inv_bp.get('/products/<int:product_id>/stock')
@require_permissions('inventory:read')
def get_stock(product_id: int):
    rows = svc.get_stock_levels(current_context(), product_id)
    return {'product_id': product_id, 'levels': [_stock_json(s) for s in rows], 'total': sum(s.quantity for s in rows)}


@inv_bp.post('/stock/adjust')
@require_permissions('inventory:update')
@audit_log('INV.STOCK.ADJUST', entity='StockItem', entity_id_key='id',
           meta_builder=lambda data, rv, a, kw: {'product_id': data.get('product_id'), 'store_id': data.get('store_id'), 'quantity': data.get('quantity'), 'delta': (request.get_json(silent=True) or {}).get('delta')})
def adjust_stock():
    s = svc.adjust_stock_level(current_context(), request.get_json(silent=True) or {})
    return _stock_json(s)


def _product_json(p: Product):
    return {
        'id': p.id,
        'name': p.name,
        'sku': p.sku,
        'retail_price_cents': p.retail_price_cents,
        'cost_price_cents': p.cost_price_cents,
        'is_service': p.is_service,
    }


def _stock_json(s: StockItem):
    return {'id': s.id, 'product_id': s.product_id, 'store_id': s.store_id, 'quantity': s.quantity}


def _supplier_json(s: Supplier):
    return {'id': s.id, 'name': s.name, 'contact_email': s.contact_email, 'is_active': s.is_active}


def _prefetch_product(product_id: int):
    p = get_db().get(Product, product_id, populate_existing=True)
    if not p:
        return {}
    return _product_json(p)
