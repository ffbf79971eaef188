"""Central enum-like definitions to avoid typos in permission/resource strings.
Codes follow the ``resource:action`` pattern; ``resource:*`` and ``*`` are wildcards.
Extend cautiously; never rename codes silently.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List


class Role(str, Enum):
    ADMIN = 'ADMIN'
    MANAGER = 'MANAGER'
    TECHNICIAN = 'TECHNICIAN'
    STAFF = 'STAFF'


RESOURCE_ACTIONS = {
    'tickets': ['read', 'create', 'update', 'delete', 'note'],
    'customers': ['read', 'create', 'update', 'delete'],
    'devices': ['read', 'create', 'update', 'delete'],
    'inventory': ['read', 'create', 'update', 'delete'],
    'appointments': ['read', 'create', 'update', 'delete'],
    'pos': ['read', 'create', 'update'],
    'reports': ['read'],
    'storage': ['read', 'create', 'update'],
    'users': ['read', 'manage'],
    'stores': ['read', 'manage'],
    'settings': ['read', 'manage'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for resource, actions in RESOURCE_ACTIONS.items():
        for act in actions:
            codes.append(f"{resource}:{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PRESETS: Dict[Role, List[str]] = {
    Role.ADMIN: ['*'],
    # Manager: broad operational authority, read-only on administration
    Role.MANAGER: [
        'tickets:*', 'customers:*', 'devices:*', 'inventory:*',
        'appointments:*', 'pos:*', 'reports:read', 'storage:*',
        'users:read', 'stores:read', 'settings:read',
    ],
    Role.TECHNICIAN: [
        'tickets:read', 'tickets:update', 'tickets:note',
        'devices:read', 'inventory:read', 'storage:read',
        'appointments:read',
    ],
    Role.STAFF: [
        'tickets:create', 'tickets:read', 'tickets:update',
        'customers:*', 'devices:*', 'inventory:read',
        'pos:*', 'appointments:create', 'appointments:read',
        'storage:read',
    ],
}
