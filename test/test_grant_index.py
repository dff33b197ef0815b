"""
Tests for the grant index maintainer

Tests gid assignment per restricted term set, grant flags, full rebuilds
and gid membership for principals.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from term_access.constants import GRANT_REALM, OPEN_POLICY_GID
from term_access.exceptions import GrantIndexError
from term_access.models import AccessPolicy, GidSequence, NodeAccessGrant
from term_access.services.grant_index import GidAllocator, GrantRecord, policy_key


async def restrict(hooks, term_id, user_ids=(), role_ids=()):
    await hooks.store.save_term_permissions(term_id, list(user_ids), list(role_ids))
    await hooks.db.commit()


@pytest.fixture
def grants(hooks):
    return hooks.grants


async def gids_by_item(db) -> dict[int, int]:
    result = await db.execute(select(NodeAccessGrant.content_item_id, NodeAccessGrant.gid))
    return dict(result.all())


class TestPolicyKey:
    """Tests for policy_key"""

    def test_open_policy(self):
        assert policy_key([]) == "open"

    def test_sorted_and_deduplicated(self):
        assert policy_key([8, 7, 8]) == "7,8"


class TestGidAllocator:
    """Tests for GidAllocator"""

    def test_open_policy_is_gid_zero(self):
        allocator = GidAllocator({}, 1)

        assert allocator.gid_for("open") == OPEN_POLICY_GID
        assert allocator.new_policies == {}

    def test_known_policies_keep_their_gid(self):
        allocator = GidAllocator({"7": 4}, 5)

        assert allocator.gid_for("7") == 4
        assert allocator.new_policies == {}

    def test_new_policies_are_numbered_upwards(self):
        allocator = GidAllocator({"7": 4}, 9)

        assert allocator.gid_for("8") == 9
        assert allocator.gid_for("7,8") == 10
        assert allocator.gid_for("8") == 9
        assert allocator.new_policies == {"8": 9, "7,8": 10}
        assert allocator.used_keys == {"8", "7,8"}

    def test_never_allocates_zero(self):
        allocator = GidAllocator({}, 0)

        assert allocator.gid_for("7") == 1


class TestRecordGrants:
    """Tests for record_grants_for_content_item"""

    async def test_open_item_gets_gid_zero(self, grants):
        record = await grants.record_grants_for_content_item(12)

        assert record == GrantRecord(
            content_item_id=12,
            gid=0,
            grant_view=True,
            grant_update=True,
            grant_delete=True,
            language="und",
        )
        assert record.realm == GRANT_REALM
        assert record.fallback is True

    async def test_restricted_item_gets_policy_gid(self, hooks, grants):
        await restrict(hooks, 7, role_ids=["editor"])

        record = await grants.record_grants_for_content_item(10)

        assert record.gid != OPEN_POLICY_GID
        assert record.language == "en"
        policy = await hooks.db.get(AccessPolicy, record.gid)
        assert policy.policy_key == "7"
        assert policy.term_ids == [7]

    async def test_same_term_set_shares_gid(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])

        first = await grants.record_grants_for_content_item(10)
        second = await grants.record_grants_for_content_item(11)
        again = await grants.record_grants_for_content_item(10)

        assert first.gid != second.gid
        assert again.gid == first.gid

    async def test_repeated_recording_is_identical(self, hooks, grants):
        await restrict(hooks, 7, role_ids=["editor"])

        first = await grants.record_grants_for_content_item(11)
        first_rows = await grants.get_grant_records(11)
        second = await grants.record_grants_for_content_item(11)
        second_rows = await grants.get_grant_records(11)

        assert first == second
        assert first_rows == second_rows == [first]

    async def test_unpublished_item_grants_nothing(self, grants):
        record = await grants.record_grants_for_content_item(42)

        assert (record.grant_view, record.grant_update, record.grant_delete) == (False, False, False)

    async def test_one_record_per_item(self, hooks, grants, seeded_db):
        await grants.record_grants_for_content_item(10)
        await restrict(hooks, 7, role_ids=["editor"])
        await grants.record_grants_for_content_item(10)

        records = await grants.get_grant_records(10)
        assert len(records) == 1
        assert records[0].gid != OPEN_POLICY_GID

    async def test_storage_failure_raises_grant_index_error(self, grants, monkeypatch):
        monkeypatch.setattr(grants.content, "get_content_item", AsyncMock(side_effect=SQLAlchemyError("boom")))

        with pytest.raises(GrantIndexError) as exc_info:
            await grants.record_grants_for_content_item(10)

        assert exc_info.value.details["operation"] == "record_grants"

    async def test_delete_grants(self, grants):
        await grants.record_grants_for_content_item(10)

        await grants.delete_grants_for_content_item(10)

        assert await grants.get_grant_records(10) == []


class TestRebuildAll:
    """Tests for rebuild_all"""

    async def test_rebuild_without_permissions(self, grants, seeded_db):
        summary = await grants.rebuild_all()

        assert summary.content_items == 6
        assert summary.policies == 1
        assert summary.retired_gids == []
        assert set((await gids_by_item(seeded_db)).values()) == {OPEN_POLICY_GID}

    async def test_rebuild_assigns_distinct_gids_per_term_set(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])

        summary = await grants.rebuild_all()
        gids = await gids_by_item(seeded_db)

        assert summary.policies == 3
        assert gids[12] == gids[13] == gids[14] == gids[42] == OPEN_POLICY_GID
        assert len({gids[10], gids[11], OPEN_POLICY_GID}) == 3

    async def test_rebuild_is_idempotent(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await grants.rebuild_all()
        first = await gids_by_item(seeded_db)

        await grants.rebuild_all()

        assert await gids_by_item(seeded_db) == first

    async def test_rebuild_retires_unused_policies(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])
        await grants.rebuild_all()
        old_gid = (await gids_by_item(seeded_db))[11]

        await restrict(hooks, 8)
        summary = await grants.rebuild_all()

        assert summary.retired_gids == [old_gid]
        assert await seeded_db.get(AccessPolicy, old_gid) is None

    async def test_retired_gid_is_never_reissued(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])
        await grants.rebuild_all()
        await restrict(hooks, 8)
        retired = (await grants.rebuild_all()).retired_gids

        await restrict(hooks, 9, user_ids=[2])
        await grants.rebuild_all()
        new_gid = (await gids_by_item(seeded_db))[13]

        assert retired
        assert new_gid not in retired
        assert new_gid > max(retired)

    async def test_retired_gid_is_not_reissued_by_single_item_writes(self, hooks, grants, seeded_db):
        await restrict(hooks, 8, user_ids=[5])
        retired_gid = (await grants.record_grants_for_content_item(11)).gid
        await restrict(hooks, 8)
        assert (await grants.rebuild_all()).retired_gids == [retired_gid]

        await restrict(hooks, 9, user_ids=[2])
        record = await grants.record_grants_for_content_item(13)

        assert record.gid > retired_gid
        sequence = await seeded_db.get(GidSequence, 1)
        assert sequence.last_gid == record.gid

    async def test_new_policy_gid_is_above_existing_gids(self, hooks, grants, seeded_db):
        await restrict(hooks, 7, role_ids=["editor"])
        await grants.rebuild_all()
        existing = (await gids_by_item(seeded_db))[10]

        await restrict(hooks, 9, user_ids=[2])
        await grants.rebuild_all()

        assert (await gids_by_item(seeded_db))[13] > existing


class TestGidMembership:
    """Tests for get_gids_for_principal and get_all_gids"""

    async def test_membership_follows_decisions(self, hooks, grants, principal_factory, alice, erin):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])
        await grants.rebuild_all()
        gids = await gids_by_item(hooks.db)

        assert await grants.get_gids_for_principal(alice) == [0, gids[10]]
        assert await grants.get_gids_for_principal(erin) == [0]
        both = principal_factory(5, "editor")
        assert await grants.get_gids_for_principal(both) == sorted([0, gids[10], gids[11]])

    async def test_open_gid_only_without_policies(self, grants, bob):
        assert await grants.get_gids_for_principal(bob) == [0]

    async def test_all_gids(self, hooks, grants):
        await restrict(hooks, 7, role_ids=["editor"])
        await grants.rebuild_all()

        all_gids = await grants.get_all_gids()

        assert all_gids[0] == OPEN_POLICY_GID
        assert len(all_gids) == 2
