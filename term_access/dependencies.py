"""
Composition root.

Wires the services together explicitly; nothing below this module looks
up collaborators or settings on its own.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.config import Settings, settings as default_settings
from term_access.database import get_db
from term_access.services.access_decision import AccessDecisionEngine
from term_access.services.access_hooks import TermAccessHooks
from term_access.services.content_source import ContentSource
from term_access.services.grant_index import GrantIndexMaintainer
from term_access.services.identity import IdentityDirectory
from term_access.services.invalidation import (
    AccessObserver,
    CacheInvalidator,
    InvalidationSignaler,
    LoggingAccessObserver,
)
from term_access.services.permission_store import PermissionStore
from term_access.services.term_hierarchy import TermHierarchyResolver
from term_access.utils.cache import cache_manager


def build_access_hooks(
    db: AsyncSession,
    config: Settings = default_settings,
    cache: CacheInvalidator = cache_manager,
    observer: AccessObserver | None = None,
) -> TermAccessHooks:
    identity = IdentityDirectory(db)
    store = PermissionStore(db, identity)
    hierarchy = TermHierarchyResolver(
        db,
        inheritance_enabled=config.term_inheritance_enabled,
        max_depth=config.max_hierarchy_depth,
        vocabularies=config.restricted_vocabularies,
    )
    content = ContentSource(db)
    engine = AccessDecisionEngine(store, hierarchy, content)
    grants = GrantIndexMaintainer(db, engine, content)
    return TermAccessHooks(
        db=db,
        engine=engine,
        store=store,
        grants=grants,
        content=content,
        signaler=InvalidationSignaler(cache),
        observer=observer or LoggingAccessObserver(),
        bypass_capability=config.bypass_capability,
    )


def get_settings() -> Settings:
    return default_settings


async def get_access_hooks(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> TermAccessHooks:
    return build_access_hooks(db, config)
