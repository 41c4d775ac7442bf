"""Role based authorization policy for book operations."""
from __future__ import annotations

import enum

from .errors import ForbiddenError


class Role(str, enum.Enum):
    LIBRARY_USER = 'LIBRARY_USER'
    LIBRARY_CURATOR = 'LIBRARY_CURATOR'


class Operation(enum.Enum):
    LIST = 'list'
    READ = 'read'
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    BORROW = 'borrow'
    RETURN = 'return'
    FORCE_RETURN = 'force_return'


_ANY_LIBRARY_ROLE = frozenset({Role.LIBRARY_USER.value, Role.LIBRARY_CURATOR.value})
_CURATOR_ONLY = frozenset({Role.LIBRARY_CURATOR.value})

POLICY = {
    Operation.LIST: _ANY_LIBRARY_ROLE,
    Operation.READ: _ANY_LIBRARY_ROLE,
    Operation.CREATE: _CURATOR_ONLY,
    Operation.UPDATE: _CURATOR_ONLY,
    Operation.DELETE: _CURATOR_ONLY,
    Operation.BORROW: _ANY_LIBRARY_ROLE,
    Operation.RETURN: _ANY_LIBRARY_ROLE,
    Operation.FORCE_RETURN: _CURATOR_ONLY,
}


def is_permitted(identity, operation: Operation) -> bool:
    """Return True if any of the identity's roles grants ``operation``."""
    if identity is None:
        return False
    return any(identity.has_role(role) for role in POLICY[operation])


def authorize(identity, operation: Operation) -> None:
    if not is_permitted(identity, operation):
        raise ForbiddenError(f'{operation.value} requires one of: {", ".join(sorted(POLICY[operation]))}.')
