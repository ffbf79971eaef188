"""Reusable input validation helpers for service entry points.

``Payload`` walks a raw mapping field by field and collects every violated
constraint, so a single ``ValidationError`` can report all of them at once:

    p = Payload(data)
    title = p.required_str('title', max_len=200)
    qty = p.required_int('quantity', min_value=1)
    p.check()   # raises ValidationError([{field, message}, ...]) if anything failed
"""
from __future__ import annotations
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar
from repairdesk.errors import ValidationError

E = TypeVar('E', bound=Enum)
_MISSING = object()
_EMAIL = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def coerce_enum(value: Any, allowed: Type[E], field_name: str) -> E:
    """Coerce ``value`` into a member of ``allowed`` (statuses, priorities, payment methods).

    Returns the enum member (to enable inline usage) or raises ValidationError.
    """
    if isinstance(value, allowed):
        return value
    try:
        return allowed(value)
    except ValueError:
        choices = ', '.join(m.value for m in allowed)
        raise ValidationError([{'field': field_name, 'message': f'must be one of: {choices}'}])


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return None


class Payload:
    def __init__(self, data: Optional[Mapping[str, Any]], prefix: str = ''):
        self.errors: List[Dict[str, str]] = []
        self.prefix = prefix
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            self.fail('', 'must be an object')
            data = {}
        self.data = data

    def _name(self, field: str) -> str:
        if not self.prefix:
            return field
        return f'{self.prefix}.{field}' if field else self.prefix

    def fail(self, field: str, message: str):
        self.errors.append({'field': self._name(field), 'message': message})
        return None

    def _get(self, field: str):
        value = self.data.get(field, _MISSING)
        return _MISSING if value is None else value

    def required_str(self, field: str, max_len: Optional[int] = None) -> Optional[str]:
        value = self._get(field)
        if value is _MISSING:
            return self.fail(field, 'is required')
        return self._str(field, value, max_len, required=True)

    def optional_str(self, field: str, max_len: Optional[int] = None) -> Optional[str]:
        value = self._get(field)
        if value is _MISSING:
            return None
        return self._str(field, value, max_len, required=False)

    def optional_email(self, field: str, max_len: Optional[int] = None) -> Optional[str]:
        """Optional address; an empty string counts as absent."""
        value = self.optional_str(field, max_len=max_len)
        if value is not None and not _EMAIL.match(value):
            return self.fail(field, 'must be a valid email address')
        return value

    def _str(self, field, value, max_len, required):
        if not isinstance(value, str):
            return self.fail(field, 'must be a string')
        value = value.strip()
        if required and not value:
            return self.fail(field, 'must not be empty')
        if max_len is not None and len(value) > max_len:
            return self.fail(field, f'must be at most {max_len} characters')
        return value or None

    def required_int(self, field: str, min_value: Optional[int] = None) -> Optional[int]:
        value = self._get(field)
        if value is _MISSING:
            return self.fail(field, 'is required')
        return self._int(field, value, min_value)

    def optional_int(self, field: str, min_value: Optional[int] = None, default: Optional[int] = None) -> Optional[int]:
        value = self._get(field)
        if value is _MISSING:
            return default
        return self._int(field, value, min_value)

    def _int(self, field, value, min_value):
        coerced = _coerce_int(value)
        if coerced is None:
            return self.fail(field, 'must be an integer')
        if min_value is not None and coerced < min_value:
            return self.fail(field, f'must be >= {min_value}')
        return coerced

    def boolean(self, field: str, default: bool) -> bool:
        value = self._get(field)
        if value is _MISSING:
            return default
        if not isinstance(value, bool):
            self.fail(field, 'must be a boolean')
            return default
        return value

    def enum(self, field: str, enum_cls: Type[E], required: bool = True, default: Optional[E] = None) -> Optional[E]:
        value = self._get(field)
        if value is _MISSING:
            if required:
                return self.fail(field, 'is required')
            return default
        try:
            return coerce_enum(value, enum_cls, field_name=field)
        except ValidationError as e:
            return self.fail(field, e.errors[0]['message'])

    def objects(self, field: str, min_items: int = 0) -> List['Payload']:
        """Return a child Payload per element of a list of objects; child errors roll up into this one."""
        value = self._get(field)
        if value is _MISSING:
            value = []
        if not isinstance(value, list):
            self.fail(field, 'must be a list')
            return []
        if len(value) < min_items:
            self.fail(field, f'must contain at least {min_items} item(s)')
        return [_ChildPayload(self, item, f'{self._name(field)}[{i}]') for i, item in enumerate(value)]

    def check(self):
        if self.errors:
            raise ValidationError(self.errors)
        return True


class _ChildPayload(Payload):
    def __init__(self, parent: Payload, data: Any, prefix: str):
        super().__init__(data, prefix=prefix)
        # share the parent's error list so one check() reports everything
        parent.errors.extend(self.errors)
        self.errors = parent.errors

__all__ = ['coerce_enum', 'Payload']
