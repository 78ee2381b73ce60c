"""
Role matrix: which project role may perform which operation.

The policy is a fixed lookup table. Authorization decisions always consult
``ROLE_MATRIX``; ``role_rank`` exists only to sort members for display and is
never used to grant or deny anything.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from taskflow_shared.schemas.common import ProjectRole


class Operation(str, Enum):
    CREATE_RESOURCE = "create_resource"
    READ_RESOURCE = "read_resource"
    UPDATE_ANY = "update_any"
    UPDATE_OWN = "update_own"
    DELETE_ANY = "delete_any"
    DELETE_OWN = "delete_own"
    MANAGE_MEMBERS = "manage_members"


_ALL = frozenset(Operation)

ROLE_MATRIX: dict[ProjectRole, frozenset[Operation]] = {
    ProjectRole.OWNER: _ALL,
    ProjectRole.ADMIN: _ALL,
    ProjectRole.MEMBER: frozenset({
        Operation.CREATE_RESOURCE,
        Operation.READ_RESOURCE,
        Operation.UPDATE_OWN,
        Operation.DELETE_OWN,
    }),
    ProjectRole.VIEWER: frozenset({Operation.READ_RESOURCE}),
}

# (any, own) pairs for the two ownership-sensitive actions
UPDATE = (Operation.UPDATE_ANY, Operation.UPDATE_OWN)
DELETE = (Operation.DELETE_ANY, Operation.DELETE_OWN)

_DISPLAY_ORDER = [ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.MEMBER, ProjectRole.VIEWER]


def _coerce(role: Union[ProjectRole, str]) -> ProjectRole:
    return role if isinstance(role, ProjectRole) else ProjectRole(role)


def can_perform(role: Union[ProjectRole, str], operation: Operation) -> bool:
    """Return True if ``role`` holds ``operation`` in the matrix."""
    return operation in ROLE_MATRIX[_coerce(role)]


def can_modify(
    role: Union[ProjectRole, str],
    action: tuple[Operation, Operation],
    *,
    is_creator: bool,
) -> bool:
    """Update/delete check: the ANY capability, or the OWN capability on one's own resource."""
    any_op, own_op = action
    if can_perform(role, any_op):
        return True
    return is_creator and can_perform(role, own_op)


def role_rank(role: Union[ProjectRole, str]) -> int:
    """Display position (0 = most privileged). Not for authorization."""
    return _DISPLAY_ORDER.index(_coerce(role))
