"""
GrantIndexMaintainer

Keeps node_access_grants in step with the permission records.

Every content item gets exactly one grant record in the
``permissions_by_term`` realm. Its gid names the item's access policy,
which is the set of restricted terms attached to it. Items sharing a
restricted term set share a gid; the open policy (no restricted terms)
is always gid 0. A principal is a member of a gid when it is allowed on
every term of that policy, so grant rows never encode user or role ids
and stay valid when permissions on an already-restricted term change.
"""

import logging
import time
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.constants import GRANT_REALM, OPEN_POLICY_GID, OPEN_POLICY_KEY
from term_access.exceptions import GrantIndexError
from term_access.models.node_access_grant import AccessPolicy, GidSequence, NodeAccessGrant
from term_access.services.access_decision import AccessDecisionEngine
from term_access.services.content_source import ContentSource
from term_access.services.identity import Principal
from term_access.utils.metrics import GRANT_REBUILD_DURATION_SECONDS, GRANT_RECORDS_WRITTEN_TOTAL

logger = logging.getLogger(__name__)

GID_SEQUENCE_ID = 1


def policy_key(term_ids: Iterable[int]) -> str:
    """Canonical key for a restricted term set."""
    ids = sorted(set(term_ids))
    if not ids:
        return OPEN_POLICY_KEY
    return ",".join(str(i) for i in ids)


@dataclass(frozen=True)
class GrantRecord:
    content_item_id: int
    gid: int
    grant_view: bool
    grant_update: bool
    grant_delete: bool
    language: str = "und"
    realm: str = GRANT_REALM
    fallback: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: NodeAccessGrant) -> "GrantRecord":
        return cls(
            content_item_id=row.content_item_id,
            gid=row.gid,
            grant_view=bool(row.grant_view),
            grant_update=bool(row.grant_update),
            grant_delete=bool(row.grant_delete),
            language=row.language,
            realm=row.realm,
            fallback=bool(row.fallback),
        )


@dataclass
class RebuildSummary:
    content_items: int = 0
    policies: int = 0
    retired_gids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class GidAllocator:
    """
    Hands out gids for a single grant pass.

    Known policies keep their gid. New policies get the next integer above
    every gid ever handed out (the persisted GidSequence mark), so a retired
    gid is never reissued, in this pass or any later one. Discard the
    allocator afterwards.
    """

    def __init__(self, known: dict[str, int], next_gid: int) -> None:
        self._gids = dict(known)
        self._gids[OPEN_POLICY_KEY] = OPEN_POLICY_GID
        self._next_gid = max(next_gid, OPEN_POLICY_GID + 1)
        self._new: dict[str, int] = {}
        self._used: set[str] = set()

    def gid_for(self, key: str) -> int:
        self._used.add(key)
        gid = self._gids.get(key)
        if gid is None:
            gid = self._next_gid
            self._next_gid += 1
            self._gids[key] = gid
            self._new[key] = gid
        return gid

    @property
    def last_gid(self) -> int:
        """Highest gid this allocator could have handed out so far."""
        return self._next_gid - 1

    @property
    def new_policies(self) -> dict[str, int]:
        return dict(self._new)

    @property
    def used_keys(self) -> set[str]:
        return set(self._used)


class GrantIndexMaintainer:
    def __init__(self, db: AsyncSession, engine: AccessDecisionEngine, content: ContentSource) -> None:
        self.db = db
        self.engine = engine
        self.content = content

    # ── Writes ───────────────────────────────────────────────────────────────

    async def record_grants_for_content_item(self, content_item_id: int) -> GrantRecord:
        """(Re)compute and store the grant record of one content item."""
        try:
            allocator = await self._start_pass()
            record = await self._compute_record(content_item_id, allocator)
            await self._persist_new_policies(allocator)
            await self._replace_records(content_item_id, [record])
            await self.db.flush()
        except SQLAlchemyError as exc:
            logger.error("Grant write failed for content %s: %s", content_item_id, exc)
            raise GrantIndexError(operation="record_grants") from exc
        GRANT_RECORDS_WRITTEN_TOTAL.inc()
        logger.debug("Grant recorded: %s", record)
        return record

    async def rebuild_all(self) -> RebuildSummary:
        """Recompute the grant record of every content item in one pass."""
        started = time.perf_counter()
        try:
            allocator = await self._start_pass()
            await self._delete_rows(NodeAccessGrant.realm == GRANT_REALM)

            content_ids = await self.content.list_content_item_ids()
            for content_item_id in content_ids:
                record = await self._compute_record(content_item_id, allocator)
                self.db.add(self._to_row(record))

            await self._persist_new_policies(allocator)
            retired = await self._retire_unused_policies(allocator.used_keys)
            await self.db.flush()
        except SQLAlchemyError as exc:
            logger.error("Grant rebuild failed: %s", exc)
            raise GrantIndexError(operation="rebuild_all") from exc

        GRANT_RECORDS_WRITTEN_TOTAL.inc(len(content_ids))
        GRANT_REBUILD_DURATION_SECONDS.observe(time.perf_counter() - started)
        summary = RebuildSummary(
            content_items=len(content_ids),
            policies=len(allocator.used_keys),
            retired_gids=retired,
        )
        logger.info(
            "Grant rebuild finished: items=%s policies=%s retired=%s",
            summary.content_items,
            summary.policies,
            summary.retired_gids,
        )
        return summary

    async def delete_grants_for_content_item(self, content_item_id: int) -> None:
        try:
            await self._replace_records(content_item_id, [])
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise GrantIndexError(operation="delete_grants") from exc

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_grant_records(self, content_item_id: int) -> list[GrantRecord]:
        result = await self.db.execute(
            select(NodeAccessGrant)
            .where(NodeAccessGrant.content_item_id == content_item_id, NodeAccessGrant.realm == GRANT_REALM)
            .order_by(NodeAccessGrant.gid)
        )
        return [GrantRecord.from_row(row) for row in result.scalars().all()]

    async def get_gids_for_principal(self, principal: Principal) -> list[int]:
        """Gids whose policy the principal satisfies; always includes the open gid."""
        result = await self.db.execute(select(AccessPolicy).order_by(AccessPolicy.gid))
        memo: dict[int, bool] = {}
        gids = [OPEN_POLICY_GID]
        for policy in result.scalars().all():
            if policy.gid == OPEN_POLICY_GID:
                continue
            if await self.engine.is_allowed_for_terms(policy.term_ids or [], principal, memo=memo):
                gids.append(policy.gid)
        return gids

    async def get_all_gids(self) -> list[int]:
        result = await self.db.execute(select(AccessPolicy.gid).order_by(AccessPolicy.gid))
        return [OPEN_POLICY_GID] + [gid for gid in result.scalars().all() if gid != OPEN_POLICY_GID]

    # ── Private helpers ──────────────────────────────────────────────────────

    async def _start_pass(self) -> GidAllocator:
        result = await self.db.execute(select(AccessPolicy.policy_key, AccessPolicy.gid))
        known = {key: gid for key, gid in result.all()}
        highest_policy = await self.db.scalar(select(func.max(AccessPolicy.gid)))
        highest_grant = await self.db.scalar(
            select(func.max(NodeAccessGrant.gid)).where(NodeAccessGrant.realm == GRANT_REALM)
        )
        sequence = await self.db.get(GidSequence, GID_SEQUENCE_ID)
        highest = max(highest_policy or 0, highest_grant or 0, sequence.last_gid if sequence else 0)
        return GidAllocator(known, highest + 1)

    async def _compute_record(self, content_item_id: int, allocator: GidAllocator) -> GrantRecord:
        item = await self.content.get_content_item(content_item_id)
        restricted = await self.engine.get_restricted_term_ids(content_item_id)
        gid = allocator.gid_for(policy_key(restricted))
        published = bool(item.published)
        return GrantRecord(
            content_item_id=content_item_id,
            gid=gid,
            grant_view=published,
            grant_update=published,
            grant_delete=published,
            language=item.langcode or "und",
        )

    async def _persist_new_policies(self, allocator: GidAllocator) -> None:
        for key, gid in sorted(allocator.new_policies.items(), key=lambda entry: entry[1]):
            term_ids = [] if key == OPEN_POLICY_KEY else [int(i) for i in key.split(",")]
            self.db.add(AccessPolicy(gid=gid, policy_key=key, term_ids=term_ids))
        if allocator.new_policies:
            await self._advance_sequence(allocator.last_gid)

    async def _advance_sequence(self, last_gid: int) -> None:
        # Retired gids stay burned: the mark only moves up
        sequence = await self.db.get(GidSequence, GID_SEQUENCE_ID)
        if sequence is None:
            self.db.add(GidSequence(id=GID_SEQUENCE_ID, last_gid=last_gid))
        elif last_gid > sequence.last_gid:
            sequence.last_gid = last_gid

    async def _retire_unused_policies(self, used_keys: set[str]) -> list[int]:
        result = await self.db.execute(select(AccessPolicy))
        retired = []
        for policy in result.scalars().all():
            if policy.policy_key not in used_keys:
                retired.append(policy.gid)
                await self.db.delete(policy)
        return sorted(retired)

    async def _replace_records(self, content_item_id: int, records: list[GrantRecord]) -> None:
        await self._delete_rows(
            NodeAccessGrant.content_item_id == content_item_id,
            NodeAccessGrant.realm == GRANT_REALM,
        )
        for record in records:
            self.db.add(self._to_row(record))

    async def _delete_rows(self, *criteria) -> None:
        # Rows must leave the session before rows with the same key are added
        result = await self.db.execute(select(NodeAccessGrant).where(*criteria))
        for row in result.scalars().all():
            await self.db.delete(row)
        await self.db.flush()

    @staticmethod
    def _to_row(record: GrantRecord) -> NodeAccessGrant:
        return NodeAccessGrant(
            content_item_id=record.content_item_id,
            gid=record.gid,
            realm=record.realm,
            language=record.language,
            grant_view=record.grant_view,
            grant_update=record.grant_update,
            grant_delete=record.grant_delete,
            fallback=record.fallback,
        )
