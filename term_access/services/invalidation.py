"""
Invalidation signals and denial observers.

Whenever a change may alter who can see a content item, the signaler
emits cache tags to the cache backend. Denied access checks are reported
to an AccessObserver.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from term_access.constants import CacheTag
from term_access.utils.metrics import record_denial, record_invalidation

logger = logging.getLogger(__name__)


class CacheInvalidator(Protocol):
    async def invalidate(self, tag: str) -> None: ...


class AccessObserver(Protocol):
    def on_access_denied(self, content_item_id: int) -> None: ...


class LoggingAccessObserver:
    """Default observer: log the denial and count it."""

    def __init__(self, reason: str = "unpublished") -> None:
        self.reason = reason

    def on_access_denied(self, content_item_id: int) -> None:
        logger.info("Access denied to unpublished content item %s", content_item_id)
        record_denial(self.reason)


class InvalidationSignaler:
    def __init__(self, backend: CacheInvalidator) -> None:
        self.backend = backend

    async def invalidate(self, tags: Iterable[str]) -> list[str]:
        """Invalidate each distinct tag once, in order; return what was sent."""
        sent: list[str] = []
        for tag in tags:
            if tag in sent:
                continue
            await self.backend.invalidate(tag)
            record_invalidation(tag)
            sent.append(tag)
        if sent:
            logger.debug("Invalidated cache tags: %s", sent)
        return sent

    async def content_items_changed(self, content_item_ids: Iterable[int]) -> list[str]:
        tags = [CacheTag.CONTENT_LIST, CacheTag.SEARCH_INDEX]
        tags.extend(CacheTag.content(i) for i in sorted(set(content_item_ids)))
        return await self.invalidate(tags)

    async def term_permissions_changed(self, term_id: int, content_item_ids: Iterable[int]) -> list[str]:
        tags = [CacheTag.term(term_id), CacheTag.CONTENT_LIST, CacheTag.SEARCH_INDEX]
        tags.extend(CacheTag.content(i) for i in sorted(set(content_item_ids)))
        return await self.invalidate(tags)

    async def user_permissions_removed(self, user_id: int, content_item_ids: Iterable[int]) -> list[str]:
        tags = [CacheTag.user(user_id), CacheTag.CONTENT_LIST, CacheTag.SEARCH_INDEX]
        tags.extend(CacheTag.content(i) for i in sorted(set(content_item_ids)))
        return await self.invalidate(tags)

    async def grants_rebuilt(self) -> list[str]:
        return await self.invalidate([CacheTag.CONTENT_LIST, CacheTag.SEARCH_INDEX])
