from __future__ import annotations
from flask import Blueprint, request
from repairdesk import get_db
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.purchase_order import PurchaseOrder
from repairdesk.services import purchase_orders as svc
from repairdesk.utils.serialize import iso, enum_value

po_bp = Blueprint('po', __name__)


@po_bp.post('/purchase-orders')
@require_permissions('inventory:create')
@audit_log('PO.CREATE', entity='PurchaseOrder', entity_id_key='id', meta_keys=['order_number', 'supplier_id', 'total_cost_cents'])
def create_purchase_order():
    po = svc.create_purchase_order(current_context(), request.get_json(silent=True) or {})
    return _po_json(po), 201


@po_bp.get('/purchase-orders/<int:po_id>')
@require_permissions('inventory:read')
def get_purchase_order(po_id: int):
    return _po_json(svc.get_purchase_order(current_context(), po_id))


@po_bp.post('/purchase-orders/<int:po_id>/submit')
@require_permissions('inventory:update')
@audit_log('PO.SUBMIT', entity='PurchaseOrder', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')), meta_keys=['status'])
def submit_purchase_order(po_id: int):
    return _po_json(svc.submit_purchase_order(current_context(), po_id))


@po_bp.post('/purchase-orders/<int:po_id>/receive')
@require_permissions('inventory:update')
@audit_log('PO.RECEIVE', entity='PurchaseOrder', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')),
           meta_builder=lambda data, rv, a, kw: {'status': data.get('status'), 'lines': len((request.get_json(silent=True) or {}).get('items') or [])})
def receive_purchase_order(po_id: int):
    data = request.get_json(silent=True) or {}
    return _po_json(svc.receive_purchase_order(current_context(), po_id, data.get('items')))


@po_bp.post('/purchase-orders/<int:po_id>/cancel')
@require_permissions('inventory:update')
@audit_log('PO.CANCEL', entity='PurchaseOrder', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')), meta_keys=['status'])
def cancel_purchase_order(po_id: int):
    return _po_json(svc.cancel_purchase_order(current_context(), po_id))


def _po_json(po: PurchaseOrder):
    return {
        'id': po.id,
        'order_number': po.order_number,
        'store_id': po.store_id,
        'supplier_id': po.supplier_id,
        'notes': po.notes,
        'status': enum_value(po.status),
        'total_cost_cents': po.total_cost_cents,
        'ordered_at': iso(po.ordered_at),
        'received_at': iso(po.received_at),
        'items': [
            {
                'id': i.id,
                'product_id': i.product_id,
                'quantity': i.quantity,
                'unit_cost_cents': i.unit_cost_cents,
                'received_qty': i.received_qty,
            }
            for i in po.items
        ],
    }


def _prefetch_po(po_id: int):
    po = get_db().get(PurchaseOrder, po_id, populate_existing=True)
    if not po:
        return {}
    return {'status': enum_value(po.status)}
