from __future__ import annotations
from typing import Any, Dict, Optional
from repairdesk import get_db
from repairdesk.models.audit import AuditLog


def add_audit(ctx, action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit log entry in the current DB session.

    Parameters:
      ctx: RequestContext of the acting user (None records actor 0)
      action: short action code e.g. TICKET.CREATE, PO.RECEIVE, INVOICE.PAYMENT
      entity: optional entity name (Ticket, PurchaseOrder, Invoice, ...)
      entity_id: optional primary key, stored as a string
      meta: additional JSON-safe dictionary (shallow copied)
    """
    role = getattr(ctx, 'role', None)
    log = AuditLog(
        actor_user_id=getattr(ctx, 'user_id', None) or 0,
        org_id=getattr(ctx, 'org_id', None),
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        role=getattr(role, 'value', role),
        meta=dict(meta or {}),
    )
    get_db().add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
