"""Human readable document numbers (TKT-04821, INV-77310, PO-00912)."""
from __future__ import annotations
import secrets
import string
from sqlalchemy import select

DIGITS = 5
MAX_ATTEMPTS = 10


def _random_suffix(length: int = DIGITS) -> str:
    return ''.join(secrets.choice(string.digits) for _ in range(length))


def next_number(session, column, prefix: str) -> str:
    """Draw random numbers until one is unused in ``column``.

    The unique constraint on the column still guards concurrent writers; a
    collision there surfaces as an IntegrityError on commit.
    """
    for _ in range(MAX_ATTEMPTS):
        candidate = f'{prefix}-{_random_suffix()}'
        taken = session.execute(select(column).where(column == candidate)).first()
        if taken is None:
            return candidate
    # space is crowded; widen the suffix rather than loop forever
    return f'{prefix}-{_random_suffix(DIGITS + 3)}'


def ticket_number(session, prefix: str = 'TKT') -> str:
    from repairdesk.models.repair_ticket import Ticket
    return next_number(session, Ticket.ticket_number, prefix)


def invoice_number(session) -> str:
    from repairdesk.models.invoice import Invoice
    return next_number(session, Invoice.invoice_number, 'INV')


def purchase_order_number(session) -> str:
    from repairdesk.models.purchase_order import PurchaseOrder
    return next_number(session, PurchaseOrder.order_number, 'PO')
