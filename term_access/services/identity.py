"""
Identity adapter.

Turns host users and roles into ``Principal`` values and answers whether
submitted user and role identifiers resolve.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.constants import ANONYMOUS_USER_ID, BUILTIN_ROLES, BuiltinRole
from term_access.exceptions import UserNotFoundError
from term_access.models.user import Role, User

logger = logging.getLogger(__name__)

WILDCARD_CAPABILITY = "*"


@dataclass(frozen=True)
class Principal:
    """An authenticated (or anonymous) requester."""

    user_id: int
    role_ids: frozenset[str] = field(default_factory=frozenset)
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == ANONYMOUS_USER_ID

    def has_capability(self, capability: str) -> bool:
        return WILDCARD_CAPABILITY in self.capabilities or capability in self.capabilities


def anonymous_principal(capabilities: Iterable[str] = ()) -> Principal:
    return Principal(
        user_id=ANONYMOUS_USER_ID,
        role_ids=frozenset({BuiltinRole.ANONYMOUS.value}),
        capabilities=frozenset(capabilities),
    )


class IdentityDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_principal(self, user_id: int | None) -> Principal:
        """
        Build the principal for *user_id*.

        ``None`` and 0 give the anonymous principal. Inactive or missing
        users raise ``UserNotFoundError``.
        """
        if not user_id:
            capabilities = await self._role_capabilities([BuiltinRole.ANONYMOUS.value])
            return anonymous_principal(capabilities)

        user = await self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError(user_id)

        role_ids = {BuiltinRole.AUTHENTICATED.value} | {role.name for role in user.roles}
        capabilities = await self._role_capabilities(role_ids)
        return Principal(
            user_id=user.id,
            role_ids=frozenset(role_ids),
            capabilities=frozenset(capabilities),
        )

    async def missing_user_ids(self, user_ids: Iterable[int]) -> set[int]:
        wanted = set(user_ids)
        if not wanted:
            return set()
        result = await self.db.execute(select(User.id).where(User.id.in_(wanted)))
        return wanted - set(result.scalars().all())

    async def missing_role_ids(self, role_ids: Iterable[str]) -> set[str]:
        wanted = set(role_ids) - BUILTIN_ROLES
        if not wanted:
            return set()
        result = await self.db.execute(select(Role.name).where(Role.name.in_(wanted)))
        return wanted - set(result.scalars().all())

    async def _role_capabilities(self, role_names: Iterable[str]) -> set[str]:
        result = await self.db.execute(select(Role.permissions).where(Role.name.in_(set(role_names))))
        capabilities: set[str] = set()
        for permissions in result.scalars().all():
            capabilities.update(permissions or [])
        return capabilities
