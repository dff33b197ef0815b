"""
TermAccessHooks

Entry points called by the host.

Each hook is thin: it delegates to the decision engine, the permission
store or the grant index, owns the database transaction, and emits
cache invalidation once the transaction has committed.
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from term_access.constants import AccessResult, Operation
from term_access.exceptions import UnsupportedOperationError
from term_access.services.access_decision import AccessDecisionEngine
from term_access.services.content_source import ContentSource
from term_access.services.grant_index import GrantIndexMaintainer, GrantRecord, RebuildSummary
from term_access.services.identity import Principal
from term_access.services.invalidation import AccessObserver, InvalidationSignaler
from term_access.services.permission_store import ChangeSet, PermissionStore
from term_access.utils.metrics import record_access_check, record_denial

logger = logging.getLogger(__name__)


def _to_operation(operation: Operation | str) -> Operation:
    try:
        return Operation(operation)
    except ValueError:
        raise UnsupportedOperationError(operation) from None


class TermAccessHooks:
    def __init__(
        self,
        db: AsyncSession,
        engine: AccessDecisionEngine,
        store: PermissionStore,
        grants: GrantIndexMaintainer,
        content: ContentSource,
        signaler: InvalidationSignaler,
        observer: AccessObserver,
        bypass_capability: str,
    ) -> None:
        self.db = db
        self.engine = engine
        self.store = store
        self.grants = grants
        self.content = content
        self.signaler = signaler
        self.observer = observer
        self.bypass_capability = bypass_capability

    @asynccontextmanager
    async def _transaction(self):
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ── Read-time checks ─────────────────────────────────────────────────────

    async def on_access_check(
        self,
        content_item_id: int,
        operation: Operation | str,
        principal: Principal,
    ) -> AccessResult:
        """
        Decide a single-item access request.

        Bypass principals are always allowed. Unpublished content is denied
        to everyone else, whatever its terms say. Any failure while deciding
        is a denial.
        """
        if principal.has_capability(self.bypass_capability):
            record_access_check(str(getattr(operation, "value", operation)), AccessResult.ALLOW.value)
            return AccessResult.ALLOW

        try:
            operation = _to_operation(operation)
            if not await self.content.is_published(content_item_id):
                self.observer.on_access_denied(content_item_id)
                result = AccessResult.DENY
            elif await self.engine.is_allowed(content_item_id, principal):
                result = AccessResult.ALLOW
            else:
                record_denial("terms")
                result = AccessResult.DENY
        except Exception:
            logger.exception(
                "Access check failed for content %s (user %s); denying", content_item_id, principal.user_id
            )
            record_denial("error")
            result = AccessResult.DENY

        record_access_check(str(getattr(operation, "value", operation)), result.value)
        return result

    async def on_grants_requested(self, principal: Principal, operation: Operation | str) -> list[int]:
        """Gids the principal belongs to, for joining against the grant table."""
        _to_operation(operation)
        if principal.has_capability(self.bypass_capability):
            return await self.grants.get_all_gids()
        return await self.grants.get_gids_for_principal(principal)

    # ── Grant maintenance ────────────────────────────────────────────────────

    async def on_grant_records_requested(self, content_item_id: int) -> list[GrantRecord]:
        async with self._transaction():
            record = await self.grants.record_grants_for_content_item(content_item_id)
        return [record]

    async def on_content_item_saved(self, content_item_id: int) -> GrantRecord:
        """Insert and update path: terms or publication status may have changed."""
        async with self._transaction():
            record = await self.grants.record_grants_for_content_item(content_item_id)
        await self.signaler.content_items_changed([content_item_id])
        return record

    async def on_content_item_deleted(self, content_item_id: int) -> None:
        async with self._transaction():
            await self.grants.delete_grants_for_content_item(content_item_id)
        await self.signaler.content_items_changed([content_item_id])

    async def rebuild_grants(self) -> RebuildSummary:
        async with self._transaction():
            summary = await self.grants.rebuild_all()
        await self.signaler.grants_rebuilt()
        return summary

    # ── Permission writes ────────────────────────────────────────────────────

    async def on_term_form_submit(
        self,
        term_id: int,
        submitted_user_ids: list[int],
        submitted_role_ids: list[str],
    ) -> ChangeSet:
        """
        Replace the allow lists of a term.

        When nothing changed, grants are left alone and no invalidation is
        emitted.
        """
        async with self._transaction():
            changes = await self.store.save_term_permissions(term_id, submitted_user_ids, submitted_role_ids)
            if changes.is_empty:
                content_item_ids: list[int] = []
            else:
                content_item_ids = await self.content.get_content_item_ids_for_terms([term_id])
                for content_item_id in content_item_ids:
                    await self.grants.record_grants_for_content_item(content_item_id)

        if changes.is_empty:
            logger.debug("Term %s permissions unchanged; skipping invalidation", term_id)
            return changes

        await self.signaler.term_permissions_changed(term_id, content_item_ids)
        return changes

    async def on_user_cancelled(self, user_id: int) -> list[int]:
        """Drop the user's permission records; return the affected term ids."""
        async with self._transaction():
            term_ids = await self.store.delete_all_for_user(user_id)
            content_item_ids = await self.content.get_content_item_ids_for_terms(term_ids)
            for content_item_id in content_item_ids:
                await self.grants.record_grants_for_content_item(content_item_id)

        if term_ids:
            await self.signaler.user_permissions_removed(user_id, content_item_ids)
        return term_ids
