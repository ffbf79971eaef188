"""Invoices raised from tickets and the payments settled against them.

An invoice becomes PAID the moment the sum of all its payments reaches the
total; there is no partially-paid status. ``paid_at`` records that first
crossing and is never moved by later payments.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Tuple

from sqlalchemy import func, select

from repairdesk import get_db
from repairdesk.errors import InvalidTransition
from repairdesk.models.invoice import Invoice, InvoiceStatus, Payment, PaymentMethod
from repairdesk.models.repair_ticket import Ticket
from repairdesk.models.tenancy import Organization
from repairdesk.services.context import RequestContext
from repairdesk.services.numbering import invoice_number
from repairdesk.services.policy import load_scoped, require_permission
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.fsm import TransitionValidator
from repairdesk.utils.money import compute_totals
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)

INVOICE_FSM = TransitionValidator('Invoice', {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.SENT: {InvoiceStatus.OVERDUE, InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELLED: set(),
})


def tax_rate_for(session, ctx: RequestContext) -> Decimal:
    """Organization's configured rate, else the deployment default."""
    org = session.get(Organization, ctx.org_id)
    if org is not None and org.tax_rate is not None:
        return Decimal(org.tax_rate)
    return ctx.settings.default_tax_rate


def amount_paid(session, invoice_id: int) -> int:
    return session.execute(
        select(func.coalesce(func.sum(Payment.amount_cents), 0)).where(Payment.invoice_id == invoice_id)
    ).scalar_one()


def invoice_balance(invoice: Invoice) -> Tuple[int, int]:
    """(amount_paid_cents, balance_cents) from the loaded payments."""
    paid = sum(p.amount_cents for p in invoice.payments)
    return paid, max(0, invoice.total_cents - paid)


def _invoice_paths(invoice_id: int):
    return ('/pos', '/invoices', f'/invoices/{invoice_id}')


def create_invoice_from_ticket(ctx: RequestContext, ticket_id: int) -> Invoice:
    require_permission(ctx, 'pos:create')
    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket')
        rate = tax_rate_for(session, ctx)
        totals = compute_totals(((li.quantity, li.unit_price_cents) for li in ticket.line_items), rate)
        invoice = Invoice(
            invoice_number=invoice_number(session),
            org_id=ctx.org_id,
            store_id=ticket.store_id,
            ticket_id=ticket.id,
            customer_id=ticket.customer_id,
            subtotal_cents=totals.subtotal_cents,
            tax_rate=rate,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            status=InvoiceStatus.DRAFT,
        )
        session.add(invoice)
    logger.info('invoice %s raised for ticket %s total=%s', invoice.invoice_number, ticket.ticket_number, invoice.total_cents)
    mark_stale(create_invoice_from_ticket, *_invoice_paths(invoice.id), f'/tickets/{ticket.id}')
    return invoice


def _move(ctx: RequestContext, invoice_id: int, target: InvoiceStatus) -> Invoice:
    session = get_db()
    with atomic(session):
        invoice = load_scoped(session, Invoice, invoice_id, ctx, 'Invoice', for_update=True)
        INVOICE_FSM.assert_can_transition(invoice.status, target)
        previous = invoice.status
        invoice.status = target
    logger.info('invoice %s %s -> %s', invoice.invoice_number, previous.value, target.value)
    mark_stale(_move, *_invoice_paths(invoice.id))
    return invoice


def send_invoice(ctx: RequestContext, invoice_id: int) -> Invoice:
    require_permission(ctx, 'pos:update')
    return _move(ctx, invoice_id, InvoiceStatus.SENT)


def mark_invoice_overdue(ctx: RequestContext, invoice_id: int) -> Invoice:
    """Flag a sent, still unpaid invoice as overdue. Only SENT invoices qualify."""
    require_permission(ctx, 'pos:update')
    return _move(ctx, invoice_id, InvoiceStatus.OVERDUE)


def cancel_invoice(ctx: RequestContext, invoice_id: int) -> Invoice:
    require_permission(ctx, 'pos:update')
    return _move(ctx, invoice_id, InvoiceStatus.CANCELLED)


def record_payment(ctx: RequestContext, invoice_id: int, data: Mapping[str, Any]) -> Payment:
    """Append a payment and flip the invoice to PAID once cumulative payments cover the total."""
    require_permission(ctx, 'pos:create')
    p = Payload(data)
    amount = p.required_int('amount_cents', min_value=1)
    method = p.enum('method', PaymentMethod)
    reference = p.optional_str('reference', max_len=120)
    p.check()

    session = get_db()
    with atomic(session):
        invoice = load_scoped(session, Invoice, invoice_id, ctx, 'Invoice', for_update=True)
        if invoice.status is InvoiceStatus.CANCELLED:
            raise InvalidTransition('Invoice', invoice.status, reason='payments cannot be recorded')
        payment = Payment(amount_cents=amount, method=method, reference=reference)
        invoice.payments.append(payment)
        session.flush()
        paid = amount_paid(session, invoice.id)
        if paid >= invoice.total_cents and invoice.status is not InvoiceStatus.PAID:
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = datetime.now(timezone.utc)
    logger.info('payment %s on invoice %s: %s cents (%s/%s)', payment.id, invoice.invoice_number, amount, paid, invoice.total_cents)
    mark_stale(record_payment, *_invoice_paths(invoice.id))
    return payment


def get_invoice(ctx: RequestContext, invoice_id: int) -> Invoice:
    require_permission(ctx, 'pos:read')
    return load_scoped(get_db(), Invoice, invoice_id, ctx, 'Invoice')
