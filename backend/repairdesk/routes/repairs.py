from __future__ import annotations
from flask import Blueprint, request
from repairdesk import get_db
from repairdesk.decorators.auth import require_permissions, current_context
from repairdesk.decorators.audit import audit_log
from repairdesk.models.repair_ticket import Ticket
from repairdesk.services import tickets as svc
from repairdesk.utils.serialize import iso, enum_value

rpr_bp = Blueprint('repairs', __name__)


@rpr_bp.post('/tickets')
@require_permissions('tickets:create')
@audit_log('TICKET.CREATE', entity='Ticket', entity_id_key='id', meta_keys=['ticket_number', 'status', 'priority'])
def create_ticket():
    t = svc.create_ticket(current_context(), request.get_json(silent=True) or {})
    return _ticket_json(t), 201


@rpr_bp.get('/tickets/<int:ticket_id>')
@require_permissions('tickets:read')
def get_ticket(ticket_id: int):
    t = svc.get_ticket(current_context(), ticket_id)
    return _ticket_json(t, detail=True)


@rpr_bp.post('/tickets/<int:ticket_id>/status')
@require_permissions('tickets:update')
@audit_log('TICKET.STATUS', entity='Ticket', entity_id_key='id', diff_keys=['status', 'completed_at'], pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')), meta_keys=['status'])
def update_status(ticket_id: int):
    t = svc.update_ticket_status(current_context(), ticket_id, request.get_json(silent=True) or {})
    return _ticket_json(t, detail=True)


@rpr_bp.post('/tickets/<int:ticket_id>/assignments')
@require_permissions('tickets:update')
@audit_log('TICKET.ASSIGN', entity='Ticket', entity_id_arg='ticket_id', meta_keys=['user_id'])
def assign_ticket(ticket_id: int):
    data = request.get_json(silent=True) or {}
    a = svc.assign_ticket(current_context(), ticket_id, data.get('user_id'))
    return _assignment_json(a), 201


@rpr_bp.post('/tickets/<int:ticket_id>/notes')
@require_permissions('tickets:note')
@audit_log('TICKET.NOTE', entity='Ticket', entity_id_arg='ticket_id', meta_keys=['is_internal'])
def add_note(ticket_id: int):
    n = svc.add_ticket_note(current_context(), ticket_id, request.get_json(silent=True) or {})
    return _note_json(n), 201


@rpr_bp.post('/tickets/<int:ticket_id>/line-items')
@require_permissions('tickets:update')
@audit_log('TICKET.LINE.ADD', entity='Ticket', entity_id_arg='ticket_id', meta_keys=['id', 'product_id', 'quantity', 'is_labor'])
def add_line_item(ticket_id: int):
    li = svc.add_line_item(current_context(), ticket_id, request.get_json(silent=True) or {})
    return _line_json(li), 201


@rpr_bp.delete('/tickets/<int:ticket_id>/line-items/<int:line_item_id>')
@require_permissions('tickets:update')
@audit_log('TICKET.LINE.REMOVE', entity='Ticket', entity_id_arg='ticket_id', meta_keys=['id', 'product_id', 'quantity'])
def remove_line_item(ticket_id: int, line_item_id: int):
    li = svc.remove_line_item(current_context(), ticket_id, line_item_id)
    return _line_json(li)


def _ticket_json(t: Ticket, detail: bool = False):
    body = {
        'id': t.id,
        'ticket_number': t.ticket_number,
        'store_id': t.store_id,
        'customer_id': t.customer_id,
        'device_id': t.device_id,
        'title': t.title,
        'description': t.description,
        'priority': enum_value(t.priority),
        'condition_on_intake': enum_value(t.condition_on_intake),
        'intake_notes': t.intake_notes,
        'status': enum_value(t.status),
        'created_by': t.created_by,
        'created_at': iso(t.created_at),
        'completed_at': iso(t.completed_at),
    }
    if detail:
        body['history'] = [_history_json(h) for h in t.history]
        body['assignments'] = [_assignment_json(a) for a in t.assignments]
        body['notes'] = [_note_json(n) for n in t.notes]
        body['line_items'] = [_line_json(li) for li in t.line_items]
    return body


def _history_json(h):
    return {
        'id': h.id,
        'from_status': enum_value(h.from_status),
        'to_status': enum_value(h.to_status),
        'user_id': h.user_id,
        'note': h.note,
        'created_at': iso(h.created_at),
    }


def _assignment_json(a):
    return {'id': a.id, 'ticket_id': a.ticket_id, 'user_id': a.user_id, 'assigned_at': iso(a.assigned_at)}


def _note_json(n):
    return {
        'id': n.id,
        'ticket_id': n.ticket_id,
        'user_id': n.user_id,
        'content': n.content,
        'is_internal': n.is_internal,
        'created_at': iso(n.created_at),
    }


def _line_json(li):
    return {
        'id': li.id,
        'ticket_id': li.ticket_id,
        'product_id': li.product_id,
        'description': li.description,
        'quantity': li.quantity,
        'unit_price_cents': li.unit_price_cents,
        'is_labor': li.is_labor,
    }


def _prefetch_ticket(ticket_id: int):
    t = get_db().get(Ticket, ticket_id, populate_existing=True)
    if not t:
        return {}
    return {'status': enum_value(t.status), 'completed_at': iso(t.completed_at)}
