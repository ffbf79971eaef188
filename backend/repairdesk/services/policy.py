from __future__ import annotations
from typing import Optional, Set, Union
from repairdesk.constants.permissions import Role, ROLE_PRESETS
from sqlalchemy import select
from repairdesk.errors import NotFound, Unauthorized, ValidationError


def _coerce_role(role: Union[Role, str, None]) -> Optional[Role]:
    if role is None or isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def role_permissions(role: Union[Role, str, None]) -> Set[str]:
    r = _coerce_role(role)
    if r is None:
        return set()
    return set(ROLE_PRESETS.get(r, []))


def has_permission(role: Union[Role, str, None], code: str) -> bool:
    """Return True when the role grants ``code`` directly or through a wildcard.

    Unknown roles grant nothing (fail closed).
    """
    perms = role_permissions(role)
    if '*' in perms:
        return True
    resource = code.split(':', 1)[0]
    return code in perms or f'{resource}:*' in perms


def require_permission(ctx, code: str):
    """Raise Unauthorized unless a context is present and its role grants ``code``."""
    if ctx is None:
        raise Unauthorized('Unauthorized: no session')
    if not has_permission(ctx.role, code):
        raise Unauthorized(f'Unauthorized: {code} required', permission=code)
    return True


def load_scoped(session, model, entity_id, ctx, entity: Optional[str] = None, for_update: bool = False):
    """Fetch ``model`` by id restricted to the caller's organization.

    Rows belonging to another tenant are indistinguishable from missing ones.
    The row is always re-read from the database, overwriting whatever the
    session's identity map still holds from an earlier request on this thread.
    ``for_update`` locks the row for the rest of the transaction on backends
    that support ``SELECT ... FOR UPDATE``.
    """
    label = entity or model.__name__
    if entity_id is None:
        raise NotFound(label)
    stmt = (
        select(model)
        .where(model.id == entity_id, model.org_id == ctx.org_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        raise NotFound(label, entity_id)
    return row


def assert_store_access(session, store_id: Optional[int], ctx) -> int:
    """Resolve the store a mutation acts on (explicit or the caller's active one) within the tenant."""
    from repairdesk.models.tenancy import Store
    sid = store_id if store_id is not None else ctx.store_id
    if sid is None:
        raise ValidationError([{'field': 'store_id', 'message': 'no active store'}])
    load_scoped(session, Store, sid, ctx, 'Store')
    return sid
