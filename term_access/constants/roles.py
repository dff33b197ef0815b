"""
Role Constants

Built-in roles every principal implicitly carries. They always resolve,
even when no row exists for them in the roles table.
"""

from enum import Enum


class BuiltinRole(str, Enum):
    """Roles assigned by the identity layer rather than by an administrator."""

    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


BUILTIN_ROLES = frozenset(role.value for role in BuiltinRole)

# User id of the anonymous principal
ANONYMOUS_USER_ID = 0
