"""Customer and device intake.

Tickets point at a customer and one of that customer's devices, so both are
created here first. Every row is stamped with the caller's organization.
"""
from __future__ import annotations
import logging
from typing import Any, Mapping

from repairdesk import get_db
from repairdesk.models.customer import Customer, Device
from repairdesk.services.context import RequestContext
from repairdesk.services.policy import load_scoped, require_permission
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)


def create_customer(ctx: RequestContext, data: Mapping[str, Any]) -> Customer:
    require_permission(ctx, 'customers:create')
    p = Payload(data)
    first_name = p.required_str('first_name', max_len=80)
    last_name = p.required_str('last_name', max_len=80)
    email = p.optional_email('email', max_len=150)
    phone = p.optional_str('phone', max_len=32)
    p.check()

    session = get_db()
    with atomic(session):
        customer = Customer(org_id=ctx.org_id, first_name=first_name, last_name=last_name, email=email, phone=phone)
        session.add(customer)
    logger.info('customer %s created org=%s', customer.id, ctx.org_id)
    mark_stale(create_customer, '/customers')
    return customer


def create_device(ctx: RequestContext, customer_id: int, data: Mapping[str, Any]) -> Device:
    """Register a device for a customer of the caller's organization."""
    require_permission(ctx, 'devices:create')
    p = Payload(data)
    device_type = p.required_str('device_type', max_len=40)
    brand = p.optional_str('brand', max_len=80)
    model = p.optional_str('model', max_len=80)
    serial_number = p.optional_str('serial_number', max_len=80)
    p.check()

    session = get_db()
    with atomic(session):
        customer = load_scoped(session, Customer, customer_id, ctx, 'Customer')
        device = Device(
            org_id=ctx.org_id,
            customer_id=customer.id,
            device_type=device_type,
            brand=brand,
            model=model,
            serial_number=serial_number,
        )
        session.add(device)
    logger.info('device %s (%s) registered for customer=%s', device.id, device.device_type, customer.id)
    mark_stale(create_device, '/devices', f'/customers/{customer.id}')
    return device


def get_customer(ctx: RequestContext, customer_id: int) -> Customer:
    require_permission(ctx, 'customers:read')
    return load_scoped(get_db(), Customer, customer_id, ctx, 'Customer')
