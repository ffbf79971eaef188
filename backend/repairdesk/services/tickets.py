"""Ticket workflow: intake, status moves, assignments, notes and line items.

Every entry point takes the caller's ``RequestContext`` first, checks the
permission, validates input and then performs its writes in one ``atomic()``
block. Status moves are checked against the transition table selected by
``ctx.settings.transition_policy`` and always append a ``TicketHistory`` row.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select

from repairdesk import get_db
from repairdesk.errors import InvalidTransition, NotFound
from repairdesk.models.customer import Customer, Device
from repairdesk.models.product import Product
from repairdesk.models.repair_ticket import (
    DeviceCondition,
    TERMINAL_STATUSES,
    TICKET_WORKFLOW,
    Ticket,
    TicketAssignment,
    TicketHistory,
    TicketLineItem,
    TicketNote,
    TicketPriority,
    TicketStatus,
)
from repairdesk.models.tenancy import User
from repairdesk.services.context import RequestContext, TransitionPolicy
from repairdesk.services.numbering import ticket_number
from repairdesk.services.policy import assert_store_access, load_scoped, require_permission
from repairdesk.services.stock_ledger import adjust_stock
from repairdesk.services.unit_of_work import atomic
from repairdesk.signals import mark_stale
from repairdesk.utils.fsm import TransitionValidator
from repairdesk.utils.validation import Payload

logger = logging.getLogger(__name__)


def _strict_graph() -> Dict[TicketStatus, set]:
    graph: Dict[TicketStatus, set] = {s: set() for s in TicketStatus}
    last = len(TICKET_WORKFLOW) - 1
    for i, status in enumerate(TICKET_WORKFLOW):
        if status in TERMINAL_STATUSES:
            continue
        targets = {TicketStatus.CANCELLED}
        if i > 0:
            targets.add(TICKET_WORKFLOW[i - 1])
        if i < last:
            targets.add(TICKET_WORKFLOW[i + 1])
        graph[status] = targets
    return graph


def _open_graph() -> Dict[TicketStatus, set]:
    return {
        s: set() if s in TERMINAL_STATUSES else {t for t in TicketStatus if t is not s}
        for s in TicketStatus
    }


TICKET_FSM = {
    TransitionPolicy.STRICT: TransitionValidator('Ticket', _strict_graph()),
    TransitionPolicy.OPEN: TransitionValidator('Ticket', _open_graph()),
}


def ticket_fsm(policy: TransitionPolicy = TransitionPolicy.STRICT) -> TransitionValidator:
    return TICKET_FSM[TransitionPolicy(policy)]


def _ticket_paths(ticket_id: Optional[int] = None):
    paths = ['/tickets', '/workshop']
    if ticket_id is not None:
        paths.append(f'/tickets/{ticket_id}')
    return paths


def create_ticket(ctx: RequestContext, data: Mapping[str, Any]) -> Ticket:
    """Open a ticket in RECEIVED at the caller's active store and log its first history row."""
    require_permission(ctx, 'tickets:create')
    p = Payload(data)
    customer_id = p.required_int('customer_id', min_value=1)
    device_id = p.required_int('device_id', min_value=1)
    title = p.required_str('title', max_len=200)
    description = p.optional_str('description')
    priority = p.enum('priority', TicketPriority)
    condition = p.enum('condition_on_intake', DeviceCondition, required=False)
    intake_notes = p.optional_str('intake_notes')
    p.check()

    session = get_db()
    with atomic(session):
        store_id = assert_store_access(session, None, ctx)
        customer = load_scoped(session, Customer, customer_id, ctx, 'Customer')
        device = load_scoped(session, Device, device_id, ctx, 'Device')
        if device.customer_id != customer.id:
            raise NotFound('Device', device_id)
        ticket = Ticket(
            ticket_number=ticket_number(session, ctx.settings.ticket_number_prefix),
            org_id=ctx.org_id,
            store_id=store_id,
            customer_id=customer.id,
            device_id=device.id,
            title=title,
            description=description,
            priority=priority,
            condition_on_intake=condition,
            intake_notes=intake_notes,
            status=TicketStatus.RECEIVED,
            created_by=ctx.user_id,
        )
        ticket.history.append(TicketHistory(
            user_id=ctx.user_id,
            from_status=None,
            to_status=TicketStatus.RECEIVED,
            note='Ticket created',
        ))
        session.add(ticket)
    logger.info('ticket %s created org=%s store=%s by user=%s', ticket.ticket_number, ctx.org_id, store_id, ctx.user_id)
    mark_stale(create_ticket, *_ticket_paths())
    return ticket


def update_ticket_status(ctx: RequestContext, ticket_id: int, data: Mapping[str, Any]) -> Ticket:
    require_permission(ctx, 'tickets:update')
    p = Payload(data)
    target = p.enum('status', TicketStatus)
    note = p.optional_str('note')
    p.check()

    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket', for_update=True)
        previous = ticket.status
        if target == previous:
            raise InvalidTransition('Ticket', previous, target, reason='already in this status')
        ticket_fsm(ctx.settings.transition_policy).assert_can_transition(previous, target)
        ticket.status = target
        ticket.completed_at = datetime.now(timezone.utc) if target is TicketStatus.COMPLETE else None
        ticket.history.append(TicketHistory(
            user_id=ctx.user_id,
            from_status=previous,
            to_status=target,
            note=note,
        ))
    logger.info('ticket %s %s -> %s by user=%s', ticket.ticket_number, previous.value, target.value, ctx.user_id)
    mark_stale(update_ticket_status, *_ticket_paths(ticket.id))
    return ticket


def assign_ticket(ctx: RequestContext, ticket_id: int, user_id: Any) -> TicketAssignment:
    require_permission(ctx, 'tickets:update')
    p = Payload({'user_id': user_id})
    assignee_id = p.required_int('user_id', min_value=1)
    p.check()

    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket', for_update=True)
        assignee = load_scoped(session, User, assignee_id, ctx, 'User')
        assignment = TicketAssignment(user_id=assignee.id)
        ticket.assignments.append(assignment)
    logger.info('ticket %s assigned to user=%s', ticket.ticket_number, assignee.id)
    mark_stale(assign_ticket, *_ticket_paths(ticket.id))
    return assignment


def add_ticket_note(ctx: RequestContext, ticket_id: int, data: Mapping[str, Any]) -> TicketNote:
    require_permission(ctx, 'tickets:note')
    p = Payload(data)
    content = p.required_str('content')
    is_internal = p.boolean('is_internal', default=True)
    p.check()

    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket', for_update=True)
        note = TicketNote(user_id=ctx.user_id, content=content, is_internal=is_internal)
        ticket.notes.append(note)
    mark_stale(add_ticket_note, f'/tickets/{ticket.id}')
    return note


def _consumes_stock(line: TicketLineItem) -> bool:
    return line.product_id is not None and not line.is_labor


def _assert_open(ticket: Ticket):
    if ticket.status in TERMINAL_STATUSES:
        raise InvalidTransition('Ticket', ticket.status, reason='line items are locked on closed tickets')


def add_line_item(ctx: RequestContext, ticket_id: int, data: Mapping[str, Any]) -> TicketLineItem:
    """Attach a part or labour line; part lines draw stock at the ticket's store."""
    require_permission(ctx, 'tickets:update')
    p = Payload(data)
    product_id = p.optional_int('product_id', min_value=1)
    description = p.optional_str('description', max_len=255)
    quantity = p.required_int('quantity', min_value=1)
    unit_price = p.optional_int('unit_price_cents', min_value=0)
    is_labor = p.boolean('is_labor', default=False)
    if product_id is None and description is None:
        p.fail('description', 'is required when no product is given')
    p.check()

    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket', for_update=True)
        _assert_open(ticket)
        product = load_scoped(session, Product, product_id, ctx, 'Product') if product_id is not None else None
        line = TicketLineItem(
            product_id=product.id if product else None,
            description=description or product.name,
            quantity=quantity,
            unit_price_cents=unit_price if unit_price is not None else (product.retail_price_cents if product else 0),
            is_labor=is_labor,
        )
        ticket.line_items.append(line)
        if _consumes_stock(line):
            adjust_stock(session, line.product_id, ticket.store_id, -line.quantity, ctx.settings.stock_mode)
    mark_stale(add_line_item, f'/tickets/{ticket.id}', '/inventory')
    return line


def remove_line_item(ctx: RequestContext, ticket_id: int, line_item_id: int) -> TicketLineItem:
    """Delete a line item; stock drawn by a part line goes back to the ticket's store."""
    require_permission(ctx, 'tickets:update')
    session = get_db()
    with atomic(session):
        ticket = load_scoped(session, Ticket, ticket_id, ctx, 'Ticket', for_update=True)
        _assert_open(ticket)
        line = next((li for li in ticket.line_items if li.id == line_item_id), None)
        if line is None:
            raise NotFound('TicketLineItem', line_item_id)
        ticket.line_items.remove(line)
        if _consumes_stock(line):
            adjust_stock(session, line.product_id, ticket.store_id, line.quantity, ctx.settings.stock_mode)
    mark_stale(remove_line_item, f'/tickets/{ticket.id}', '/inventory')
    return line


def get_ticket(ctx: RequestContext, ticket_id: int) -> Ticket:
    require_permission(ctx, 'tickets:read')
    return load_scoped(get_db(), Ticket, ticket_id, ctx, 'Ticket')


def latest_history(session, ticket_id: int) -> Optional[TicketHistory]:
    return session.execute(
        select(TicketHistory).where(TicketHistory.ticket_id == ticket_id).order_by(TicketHistory.id.desc()).limit(1)
    ).scalar_one_or_none()
