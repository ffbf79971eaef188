from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.customer import Customer, Device
from repairdesk.services import customers as svc
from repairdesk.utils.serialize import iso

cust_bp = Blueprint('customers', __name__)


@cust_bp.post('')
@require_permissions('customers:create')
@audit_log('CUSTOMER.CREATE', entity='Customer', entity_id_key='id', meta_keys=['first_name', 'last_name'])
def create_customer():
    c = svc.create_customer(current_context(), request.get_json(silent=True) or {})
    return _customer_json(c), 201


@cust_bp.get('/<int:customer_id>')
@require_permissions('customers:read')
def get_customer(customer_id: int):
    c = svc.get_customer(current_context(), customer_id)
    body = _customer_json(c)
    body['devices'] = [_device_json(d) for d in c.devices]
    return body


@cust_bp.post('/<int:customer_id>/devices')
@require_permissions('devices:create')
@audit_log('DEVICE.CREATE', entity='Device', entity_id_key='id', meta_keys=['customer_id', 'device_type'])
def create_device(customer_id: int):
    d = svc.create_device(current_context(), customer_id, request.get_json(silent=True) or {})
    return _device_json(d), 201


def _customer_json(c: Customer):
    return {
        'id': c.id,
        'first_name': c.first_name,
        'last_name': c.last_name,
        'email': c.email,
        'phone': c.phone,
        'created_at': iso(c.created_at),
    }


def _device_json(d: Device):
    return {
        'id': d.id,
        'customer_id': d.customer_id,
        'device_type': d.device_type,
        'brand': d.brand,
        'model': d.model,
        'serial_number': d.serial_number,
    }
