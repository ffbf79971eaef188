"""Audit logging decorator for mutating route handlers.

Usage:

@audit_log('TICKET.CREATE', entity='Ticket', entity_id_key='id', meta_keys=['ticket_number', 'status'])
def create_ticket():
    ... return _ticket_json(t), 201

@audit_log('TICKET.STATUS', entity='Ticket', entity_id_key='id', diff_keys=['status'],
           pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def update_status(ticket_id): ...

Parameters:
  action: audit action code (e.g. PO.RECEIVE)
  entity: entity label (Ticket, PurchaseOrder, Invoice)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: path parameter used for entity_id when the key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable (data, rv, args, kwargs) -> dict; overrides meta_keys.
  diff_keys / pre_fetch: snapshot taken before the handler runs; changed keys
    are recorded under meta['changes'] as {'before', 'after'}.

The entry is written after the handler returns, in its own commit. The
handler's own unit of work has already committed, so an audit failure is
logged and rolled back without touching the response.
"""
from __future__ import annotations
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from flask import current_app, g

from repairdesk import get_db
from repairdesk.services.audit import add_audit


def _extract_payload(rv: Any):
    """Return the JSON-able dict from dict / (dict, status) / (dict, status, headers)."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if diff_keys and pre_fetch else None
            rv = fn(*args, **kwargs)
            session = get_db()
            try:
                data = _extract_payload(rv)
                if not isinstance(data, dict):
                    data = {}
                entity_id = data.get(entity_id_key) if entity_id_key else None
                if entity_id is None and entity_id_arg:
                    entity_id = kwargs.get(entity_id_arg)
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs) or {}
                else:
                    meta = {k: data.get(k) for k in (meta_keys or []) if k in data}
                if isinstance(before, dict):
                    changes = _diff(before, data, diff_keys)
                    if changes:
                        meta['changes'] = changes
                add_audit(g.get('ctx'), action, entity, entity_id, meta)
                session.commit()
            except Exception:
                current_app.logger.exception('audit %s failed', action)
                session.rollback()
            return rv
        return wrapper
    return outer
