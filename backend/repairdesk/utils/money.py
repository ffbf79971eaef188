"""Integer-cent arithmetic for invoices and sales."""
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Tuple


class Totals(NamedTuple):
    subtotal_cents: int
    tax_cents: int
    total_cents: int


def line_total(quantity: int, unit_price_cents: int) -> int:
    return quantity * unit_price_cents


def tax_on(subtotal_cents: int, rate: Decimal) -> int:
    # half-up to the nearest cent
    return int((Decimal(subtotal_cents) * Decimal(rate)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def compute_totals(lines: Iterable[Tuple[int, int]], rate: Decimal) -> Totals:
    """``lines`` yields ``(quantity, unit_price_cents)`` pairs."""
    subtotal = sum(line_total(q, p) for q, p in lines)
    tax = tax_on(subtotal, rate)
    return Totals(subtotal, tax, subtotal + tax)


__all__ = ['Totals', 'line_total', 'tax_on', 'compute_totals']
