from functools import wraps
from flask import current_app, g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from repairdesk.errors import Unauthorized
from repairdesk.services.context import RequestContext, ServiceSettings
from repairdesk.services.policy import require_permission


def _context_from_claims() -> RequestContext:
    claims = get_jwt()
    ident = get_jwt_identity()
    if ident is None or claims.get('org_id') is None:
        raise Unauthorized('Unauthorized: no session')
    store_id = claims.get('store_id')
    return RequestContext(
        user_id=int(ident),
        role=claims.get('role'),
        org_id=int(claims['org_id']),
        store_id=int(store_id) if store_id is not None else None,
        settings=ServiceSettings.from_config(current_app.config),
    )


def current_context() -> RequestContext:
    """RequestContext built by ``require_permissions`` for this request."""
    ctx = g.get('ctx')
    if ctx is None:
        raise Unauthorized('Unauthorized: no session')
    return ctx


def require_permissions(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            ctx = _context_from_claims()
            for code in codes:
                require_permission(ctx, code)
            g.ctx = ctx
            return fn(*args, **kwargs)
        return wrapper
    return outer
