"""
PermissionStore

Durable (term, principal) -> allowed records. Pure data access: no access
decisions are made here.

A term with no record at all is unrestricted. Saving a term's permissions
replaces the stored user and role sets with the submitted ones and reports
what changed, so callers can skip grant recomputation and cache
invalidation when nothing did.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.constants import PrincipalKind
from term_access.exceptions import TermNotFoundError, ValidationError
from term_access.models.term import Term
from term_access.models.term_permission import TermPermission
from term_access.services.identity import IdentityDirectory

logger = logging.getLogger(__name__)


@dataclass
class ChangeSet:
    """Entries added and removed by one permission save."""

    term_id: int
    added_user_ids: set[int] = field(default_factory=set)
    removed_user_ids: set[int] = field(default_factory=set)
    added_role_ids: set[str] = field(default_factory=set)
    removed_role_ids: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.added_user_ids or self.removed_user_ids or self.added_role_ids or self.removed_role_ids)

    def __bool__(self) -> bool:
        return not self.is_empty

    def to_dict(self) -> dict:
        return {
            "term_id": self.term_id,
            "changed": not self.is_empty,
            "added_user_ids": sorted(self.added_user_ids),
            "removed_user_ids": sorted(self.removed_user_ids),
            "added_role_ids": sorted(self.added_role_ids),
            "removed_role_ids": sorted(self.removed_role_ids),
        }


class PermissionStore:
    def __init__(self, db: AsyncSession, identity: IdentityDirectory) -> None:
        self.db = db
        self.identity = identity

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_allowed_user_ids(self, term_id: int) -> list[int]:
        ids = await self._principal_ids(term_id, PrincipalKind.USER)
        return sorted(int(i) for i in ids)

    async def get_allowed_role_ids(self, term_id: int) -> list[str]:
        return sorted(await self._principal_ids(term_id, PrincipalKind.ROLE))

    async def is_any_permission_set_for_term(self, term_id: int) -> bool:
        result = await self.db.execute(select(TermPermission.id).where(TermPermission.term_id == term_id).limit(1))
        return result.scalar_one_or_none() is not None

    async def get_restricted_term_ids(self, term_ids: Iterable[int]) -> set[int]:
        """The subset of *term_ids* that carry at least one permission record."""
        wanted = set(term_ids)
        if not wanted:
            return set()
        result = await self.db.execute(
            select(TermPermission.term_id).where(TermPermission.term_id.in_(wanted)).distinct()
        )
        return set(result.scalars().all())

    async def has_explicit_allow(self, term_ids: Iterable[int], user_id: int, role_ids: Iterable[str]) -> bool:
        """True if any of *term_ids* allows the user directly or through one of the roles."""
        wanted = set(term_ids)
        if not wanted:
            return False
        subject = TermPermission.principal_kind == PrincipalKind.USER
        subject = and_(subject, TermPermission.principal_id == str(user_id))
        roles = set(role_ids)
        if roles:
            subject = or_(
                subject,
                and_(TermPermission.principal_kind == PrincipalKind.ROLE, TermPermission.principal_id.in_(roles)),
            )
        result = await self.db.execute(
            select(TermPermission.id).where(TermPermission.term_id.in_(wanted), subject).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_term_ids_for_user(self, user_id: int) -> list[int]:
        result = await self.db.execute(
            select(TermPermission.term_id).where(
                TermPermission.principal_kind == PrincipalKind.USER,
                TermPermission.principal_id == str(user_id),
            )
        )
        return sorted(set(result.scalars().all()))

    # ── Writes ───────────────────────────────────────────────────────────────

    async def save_term_permissions(
        self,
        term_id: int,
        user_ids: Iterable[int],
        role_ids: Iterable[str],
    ) -> ChangeSet:
        """
        Make the stored allow lists for *term_id* exactly *user_ids* and *role_ids*.

        Raises TermNotFoundError for an unknown term and ValidationError when
        any user or role does not resolve; nothing is written in either case.
        """
        submitted_users = {int(u) for u in user_ids}
        submitted_roles = {str(r) for r in role_ids}

        if await self.db.get(Term, term_id) is None:
            raise TermNotFoundError(term_id)

        unknown_users = await self.identity.missing_user_ids(submitted_users)
        unknown_roles = await self.identity.missing_role_ids(submitted_roles)
        if unknown_users or unknown_roles:
            raise ValidationError(
                f"Permissions for term {term_id} reference unknown principals",
                unknown_user_ids=list(unknown_users),
                unknown_role_ids=list(unknown_roles),
                term_id=term_id,
            )

        current_users = set(await self.get_allowed_user_ids(term_id))
        current_roles = set(await self.get_allowed_role_ids(term_id))

        changes = ChangeSet(
            term_id=term_id,
            added_user_ids=submitted_users - current_users,
            removed_user_ids=current_users - submitted_users,
            added_role_ids=submitted_roles - current_roles,
            removed_role_ids=current_roles - submitted_roles,
        )
        if changes.is_empty:
            return changes

        await self._delete_entries(term_id, PrincipalKind.USER, {str(u) for u in changes.removed_user_ids})
        await self._delete_entries(term_id, PrincipalKind.ROLE, changes.removed_role_ids)
        for user_id in sorted(changes.added_user_ids):
            self.db.add(TermPermission(term_id=term_id, principal_kind=PrincipalKind.USER, principal_id=str(user_id)))
        for role_id in sorted(changes.added_role_ids):
            self.db.add(TermPermission(term_id=term_id, principal_kind=PrincipalKind.ROLE, principal_id=role_id))
        await self.db.flush()

        logger.info(
            "Term permissions saved: term=%s +users=%s -users=%s +roles=%s -roles=%s",
            term_id,
            sorted(changes.added_user_ids),
            sorted(changes.removed_user_ids),
            sorted(changes.added_role_ids),
            sorted(changes.removed_role_ids),
        )
        return changes

    async def delete_all_for_user(self, user_id: int) -> list[int]:
        """Remove every user record for *user_id*; return the affected term ids."""
        term_ids = await self.get_term_ids_for_user(user_id)
        if not term_ids:
            return []
        await self.db.execute(
            delete(TermPermission).where(
                TermPermission.principal_kind == PrincipalKind.USER,
                TermPermission.principal_id == str(user_id),
            )
        )
        await self.db.flush()
        logger.info("Term permissions removed for user=%s terms=%s", user_id, term_ids)
        return term_ids

    # ── Private helpers ──────────────────────────────────────────────────────

    async def _principal_ids(self, term_id: int, kind: PrincipalKind) -> set[str]:
        result = await self.db.execute(
            select(TermPermission.principal_id).where(
                TermPermission.term_id == term_id,
                TermPermission.principal_kind == kind,
            )
        )
        return set(result.scalars().all())

    async def _delete_entries(self, term_id: int, kind: PrincipalKind, principal_ids: set[str]) -> None:
        if not principal_ids:
            return
        await self.db.execute(
            delete(TermPermission).where(
                TermPermission.term_id == term_id,
                TermPermission.principal_kind == kind,
                TermPermission.principal_id.in_(principal_ids),
            )
        )
