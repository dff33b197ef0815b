from .access import (
    GRANT_REALM,
    OPEN_POLICY_GID,
    OPEN_POLICY_KEY,
    AccessResult,
    CacheTag,
    Operation,
    PrincipalKind,
)
from .roles import ANONYMOUS_USER_ID, BUILTIN_ROLES, BuiltinRole

__all__ = [
    "GRANT_REALM",
    "OPEN_POLICY_GID",
    "OPEN_POLICY_KEY",
    "AccessResult",
    "CacheTag",
    "Operation",
    "PrincipalKind",
    "ANONYMOUS_USER_ID",
    "BUILTIN_ROLES",
    "BuiltinRole",
]
