from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.sale import SaleTransaction
from repairdesk.services import sales as svc
from repairdesk.utils.serialize import iso, enum_value

sales_bp = Blueprint('sales', __name__)


@sales_bp.post('/transactions')
@require_permissions('pos:create')
@audit_log('POS.SALE.CREATE', entity='SaleTransaction', entity_id_key='id',
           meta_builder=lambda data, rv, a, kw: {'total_cents': data.get('total_cents'), 'lines': len(data.get('line_items') or [])})
def create_sale():
    sale = svc.create_sale_transaction(current_context(), request.get_json(silent=True) or {})
    return _sale_json(sale), 201


@sales_bp.get('/transactions/<int:sale_id>')
@require_permissions('pos:read')
def get_sale(sale_id: int):
    return _sale_json(svc.get_sale_transaction(current_context(), sale_id))


def _sale_json(s: SaleTransaction):
    return {
        'id': s.id,
        'store_id': s.store_id,
        'user_id': s.user_id,
        'customer_id': s.customer_id,
        'subtotal_cents': s.subtotal_cents,
        'tax_cents': s.tax_cents,
        'total_cents': s.total_cents,
        'payment_method': enum_value(s.payment_method),
        'payment_ref': s.payment_ref,
        'created_at': iso(s.created_at),
        'line_items': [
            {
                'id': li.id,
                'product_id': li.product_id,
                'description': li.description,
                'quantity': li.quantity,
                'unit_price_cents': li.unit_price_cents,
            }
            for li in s.line_items
        ],
    }
