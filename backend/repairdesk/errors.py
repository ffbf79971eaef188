"""Domain error taxonomy shared by services and the HTTP layer.

Services raise these; ``create_app`` maps every ``DomainError`` onto the unified
JSON error body, using ``status`` as the HTTP code.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    status = 400
    title = 'Bad Request'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status, 'title': self.title, 'detail': self.message}


class Unauthorized(DomainError):
    """No request context, or the caller's role lacks the permission."""
    status = 403
    title = 'Forbidden'

    def __init__(self, message: str = 'Unauthorized', permission: Optional[str] = None):
        super().__init__(message)
        self.permission = permission


class NotFound(DomainError):
    """Entity absent or outside the caller's organization."""
    status = 404
    title = 'Not Found'

    def __init__(self, entity: str, entity_id: Any = None):
        detail = f'{entity} not found' if entity_id is None else f'{entity} {entity_id} not found'
        super().__init__(detail)
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(DomainError):
    status = 400
    title = 'Validation Failed'

    def __init__(self, errors: List[Dict[str, str]]):
        fields = ', '.join(sorted({e['field'] for e in errors}))
        super().__init__(f'invalid input: {fields}')
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body['errors'] = list(self.errors)
        return body


class InvalidTransition(DomainError):
    status = 409
    title = 'Conflict'

    def __init__(self, entity: str, current: Any, target: Any = None, reason: Optional[str] = None):
        cur = getattr(current, 'value', current)
        if target is not None:
            tgt = getattr(target, 'value', target)
            message = f'Invalid {entity} transition {cur} -> {tgt}'
        else:
            message = f'{entity} is {cur}'
        if reason:
            message = f'{message}: {reason}'
        super().__init__(message)
        self.current = current
        self.target = target


class InsufficientStock(DomainError):
    status = 409
    title = 'Conflict'

    def __init__(self, product_id: int, store_id: int, requested: int, available: Optional[int]):
        super().__init__(
            f'insufficient stock for product {product_id} at store {store_id}: '
            f'requested {requested}, available {available or 0}'
        )
        self.product_id = product_id
        self.store_id = store_id
        self.requested = requested
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body['product_id'] = self.product_id
        body['store_id'] = self.store_id
        return body


class ImmutableRecord(DomainError):
    """Raised when flushing an update or delete of an append-only row."""
    status = 409
    title = 'Conflict'

    def __init__(self, entity: str, entity_id: Any, operation: str):
        super().__init__(f'{entity} {entity_id} is append-only ({operation} rejected)')
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation


__all__ = ['DomainError', 'Unauthorized', 'NotFound', 'ValidationError', 'InvalidTransition', 'InsufficientStock', 'ImmutableRecord']
