"""
Tests for the access decision engine

Tests the per-term rule, the conjunction across a content item's terms,
inheritance from ancestor terms and the vocabulary filter.
"""

import pytest
from sqlalchemy import insert

from term_access.dependencies import build_access_hooks
from term_access.exceptions import ContentNotFoundError
from term_access.models import term_hierarchy


async def restrict(hooks, term_id, user_ids=(), role_ids=()):
    await hooks.store.save_term_permissions(term_id, list(user_ids), list(role_ids))
    await hooks.db.commit()


@pytest.fixture
def engine(hooks):
    return hooks.engine


@pytest.fixture
def inheriting_hooks(seeded_db, test_settings, cache, observer):
    config = test_settings.model_copy(update={"term_inheritance_enabled": True})
    return build_access_hooks(seeded_db, config, cache=cache, observer=observer)


class TestTermRule:
    """Tests for is_term_allowed"""

    async def test_term_without_records_is_open(self, engine, bob, principal_factory):
        assert await engine.is_term_allowed(7, bob) is True
        assert await engine.is_term_allowed(7, principal_factory(0)) is True

    async def test_role_allow(self, hooks, engine, alice, bob):
        await restrict(hooks, 7, role_ids=["editor"])

        assert await engine.is_term_allowed(7, alice) is True
        assert await engine.is_term_allowed(7, bob) is False

    async def test_user_allow(self, hooks, engine, alice, bob):
        await restrict(hooks, 7, user_ids=[2])

        assert await engine.is_term_allowed(7, bob) is True
        assert await engine.is_term_allowed(7, alice) is False

    async def test_authenticated_role_allows_any_logged_in_user(self, hooks, engine, bob, principal_factory):
        await restrict(hooks, 7, role_ids=["authenticated"])

        assert await engine.is_term_allowed(7, bob) is True
        assert await engine.is_term_allowed(7, principal_factory(0)) is False

    async def test_get_allowed_term_ids(self, hooks, engine, bob):
        await restrict(hooks, 8, user_ids=[1])

        assert await engine.get_allowed_term_ids([9, 8, 7], bob) == [7, 9]


class TestContentDecision:
    """Tests for is_allowed over a content item's terms"""

    async def test_role_allows_single_term_item(self, hooks, engine, alice, bob):
        await restrict(hooks, 7, role_ids=["editor"])

        assert await engine.is_allowed(10, alice) is True
        assert await engine.is_allowed(10, bob) is False

    async def test_every_restricted_term_must_allow(self, hooks, engine, alice):
        await restrict(hooks, 7, role_ids=["editor"])
        await restrict(hooks, 8, user_ids=[5])

        assert await engine.is_allowed(10, alice) is True
        assert await engine.is_allowed(11, alice) is False

    async def test_unrestricted_terms_do_not_count(self, hooks, engine, bob):
        await restrict(hooks, 8, user_ids=[2])

        assert await engine.is_allowed(11, bob) is True

    async def test_item_without_terms_is_open(self, hooks, engine, bob):
        await restrict(hooks, 7, user_ids=[1])

        assert await engine.is_allowed(12, bob) is True

    async def test_unknown_content_raises(self, engine, bob):
        with pytest.raises(ContentNotFoundError):
            await engine.is_allowed(999, bob)

    async def test_empty_term_set_is_allowed(self, engine, bob):
        assert await engine.is_allowed_for_terms([], bob) is True

    async def test_memo_is_filled(self, hooks, engine, bob):
        await restrict(hooks, 8, user_ids=[1])
        memo: dict[int, bool] = {}

        assert await engine.is_allowed_for_terms([7, 8], bob, memo=memo) is False
        assert memo == {7: True, 8: False}

    async def test_get_restricted_term_ids(self, hooks, engine):
        await restrict(hooks, 8, user_ids=[1])

        assert await engine.get_restricted_term_ids(11) == frozenset({8})
        assert await engine.get_restricted_term_ids(12) == frozenset()

    async def test_vocabulary_filter(self, hooks, seeded_db, test_settings, bob):
        await restrict(hooks, 9, user_ids=[1])
        config = test_settings.model_copy(update={"restricted_vocabularies": ["departments"]})
        filtered = build_access_hooks(seeded_db, config).engine

        assert await hooks.engine.is_allowed(13, bob) is False
        assert await filtered.is_allowed(13, bob) is True
        assert await filtered.get_restricted_term_ids(13) == frozenset()


class TestInheritance:
    """Tests for allows inherited from ancestor terms"""

    async def test_ancestor_allow_counts_when_enabled(self, inheriting_hooks, erin, bob):
        await restrict(inheriting_hooks, 7, user_ids=[2])
        await restrict(inheriting_hooks, 21, user_ids=[5])

        assert await inheriting_hooks.engine.is_allowed(14, erin) is True
        assert await inheriting_hooks.engine.is_allowed(14, bob) is True

    async def test_ancestor_allow_ignored_when_disabled(self, hooks, bob):
        await restrict(hooks, 7, user_ids=[2])
        await restrict(hooks, 21, user_ids=[5])

        assert await hooks.engine.is_allowed(14, bob) is False

    async def test_unrestricted_child_stays_open(self, inheriting_hooks, alice):
        await restrict(inheriting_hooks, 7, user_ids=[2])

        assert await inheriting_hooks.engine.is_allowed(14, alice) is True

    async def test_malformed_hierarchy_falls_back_to_own_records(self, inheriting_hooks, seeded_db, erin, bob):
        await restrict(inheriting_hooks, 7, user_ids=[2])
        await restrict(inheriting_hooks, 21, user_ids=[5])
        await seeded_db.execute(insert(term_hierarchy), [{"term_id": 7, "parent_id": 21}])
        await seeded_db.commit()

        assert await inheriting_hooks.engine.is_allowed(14, erin) is True
        assert await inheriting_hooks.engine.is_allowed(14, bob) is False
