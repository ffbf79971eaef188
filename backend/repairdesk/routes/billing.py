from __future__ import annotations
from flask import Blueprint, request
from repairdesk import get_db
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.invoice import Invoice, Payment
from repairdesk.services import billing as svc
from repairdesk.utils.serialize import iso, enum_value

billing_bp = Blueprint('billing', __name__)


@billing_bp.post('/tickets/<int:ticket_id>/invoice')
@require_permissions('pos:create')
@audit_log('INVOICE.CREATE', entity='Invoice', entity_id_key='id', meta_keys=['invoice_number', 'ticket_id', 'total_cents'])
def create_invoice(ticket_id: int):
    inv = svc.create_invoice_from_ticket(current_context(), ticket_id)
    return _invoice_json(inv), 201


@billing_bp.get('/invoices/<int:invoice_id>')
@require_permissions('pos:read')
def get_invoice(invoice_id: int):
    return _invoice_json(svc.get_invoice(current_context(), invoice_id))


@billing_bp.post('/invoices/<int:invoice_id>/send')
@require_permissions('pos:update')
@audit_log('INVOICE.SEND', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_invoice(kw.get('invoice_id')), meta_keys=['status'])
def send_invoice(invoice_id: int):
    return _invoice_json(svc.send_invoice(current_context(), invoice_id))


@billing_bp.post('/invoices/<int:invoice_id>/overdue')
@require_permissions('pos:update')
@audit_log('INVOICE.OVERDUE', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_invoice(kw.get('invoice_id')), meta_keys=['status'])
def mark_overdue(invoice_id: int):
    return _invoice_json(svc.mark_invoice_overdue(current_context(), invoice_id))


@billing_bp.post('/invoices/<int:invoice_id>/cancel')
@require_permissions('pos:update')
@audit_log('INVOICE.CANCEL', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_invoice(kw.get('invoice_id')), meta_keys=['status'])
def cancel_invoice(invoice_id: int):
    return _invoice_json(svc.cancel_invoice(current_context(), invoice_id))


@billing_bp.post('/invoices/<int:invoice_id>/payments')
@require_permissions('pos:create')
@audit_log('INVOICE.PAYMENT', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_invoice(kw.get('invoice_id')), meta_keys=['status', 'amount_paid_cents'])
def record_payment(invoice_id: int):
    payment = svc.record_payment(current_context(), invoice_id, request.get_json(silent=True) or {})
    body = _invoice_json(payment.invoice)
    body['payment'] = _payment_json(payment)
    return body, 201


def _invoice_json(inv: Invoice):
    paid, balance = svc.invoice_balance(inv)
    return {
        'id': inv.id,
        'invoice_number': inv.invoice_number,
        'store_id': inv.store_id,
        'ticket_id': inv.ticket_id,
        'customer_id': inv.customer_id,
        'subtotal_cents': inv.subtotal_cents,
        'tax_rate': str(inv.tax_rate),
        'tax_cents': inv.tax_cents,
        'total_cents': inv.total_cents,
        'status': enum_value(inv.status),
        'paid_at': iso(inv.paid_at),
        'amount_paid_cents': paid,
        'balance_cents': balance,
        'payments': [_payment_json(p) for p in inv.payments],
    }


def _payment_json(p: Payment):
    return {
        'id': p.id,
        'amount_cents': p.amount_cents,
        'method': enum_value(p.method),
        'reference': p.reference,
        'created_at': iso(p.created_at),
    }


def _prefetch_invoice(invoice_id: int):
    inv = get_db().get(Invoice, invoice_id, populate_existing=True)
    if not inv:
        return {}
    return {'status': enum_value(inv.status)}
