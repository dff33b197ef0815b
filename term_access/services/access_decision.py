"""
AccessDecisionEngine

Decides whether a principal may access a content item from its terms.

Rules:
  - A term with no permission record is open to everyone.
  - A restricted term allows a principal that is listed directly (user)
    or through any of its roles. With inheritance enabled, an allow on
    any ancestor term also counts.
  - A content item is allowed only if every restricted term attached to
    it allows the principal. Items without restricted terms are open.

The engine reads the permission and term tables only; it never consults
the grant table, so a broken grant index cannot change its answers.
Publication status and bypass capabilities are the caller's concern.
"""

import logging
from collections.abc import Iterable

from term_access.exceptions import HierarchyError
from term_access.services.content_source import ContentSource
from term_access.services.identity import Principal
from term_access.services.permission_store import PermissionStore
from term_access.services.term_hierarchy import TermHierarchyResolver

logger = logging.getLogger(__name__)


class AccessDecisionEngine:
    def __init__(
        self,
        store: PermissionStore,
        hierarchy: TermHierarchyResolver,
        content: ContentSource,
    ) -> None:
        self.store = store
        self.hierarchy = hierarchy
        self.content = content

    async def is_term_allowed(self, term_id: int, principal: Principal) -> bool:
        if not await self.store.is_any_permission_set_for_term(term_id):
            return True

        if await self.store.has_explicit_allow([term_id], principal.user_id, principal.role_ids):
            return True

        try:
            ancestors = await self.hierarchy.get_ancestors(term_id)
        except HierarchyError as exc:
            # Fall back to the term's own records; never widen access
            logger.error("Ignoring inheritance for term %s: %s", term_id, exc.message)
            return False

        if ancestors and await self.store.has_explicit_allow(ancestors, principal.user_id, principal.role_ids):
            return True
        return False

    async def is_allowed(self, content_item_id: int, principal: Principal) -> bool:
        """Raises ContentNotFoundError for an unknown item rather than treating it as open."""
        await self.content.get_content_item(content_item_id)
        term_ids = await self.hierarchy.participating_term_ids(
            await self.content.get_term_ids_for_content_item(content_item_id)
        )
        return await self.is_allowed_for_terms(term_ids, principal)

    async def is_allowed_for_terms(
        self,
        term_ids: Iterable[int],
        principal: Principal,
        memo: dict[int, bool] | None = None,
    ) -> bool:
        """Conjunction of is_term_allowed over *term_ids*; True for an empty set."""
        memo = {} if memo is None else memo
        for term_id in sorted(set(term_ids)):
            if term_id not in memo:
                memo[term_id] = await self.is_term_allowed(term_id, principal)
            if not memo[term_id]:
                return False
        return True

    async def get_allowed_term_ids(self, term_ids: Iterable[int], principal: Principal) -> list[int]:
        """The terms of *term_ids* the principal may use, e.g. to filter a term picker."""
        allowed = []
        for term_id in sorted(set(term_ids)):
            if await self.is_term_allowed(term_id, principal):
                allowed.append(term_id)
        return allowed

    async def get_restricted_term_ids(self, content_item_id: int) -> frozenset[int]:
        """Participating terms of the item that carry at least one permission record."""
        term_ids = await self.hierarchy.participating_term_ids(
            await self.content.get_term_ids_for_content_item(content_item_id)
        )
        return frozenset(await self.store.get_restricted_term_ids(term_ids))
