"""Read-only view of the host's content items and their term references."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.exceptions import ContentNotFoundError
from term_access.models.content import ContentItem, content_item_terms


class ContentSource:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_content_item(self, content_item_id: int) -> ContentItem:
        item = await self.db.get(ContentItem, content_item_id)
        if item is None:
            raise ContentNotFoundError(content_item_id)
        return item

    async def is_published(self, content_item_id: int) -> bool:
        item = await self.get_content_item(content_item_id)
        return bool(item.published)

    async def get_langcode(self, content_item_id: int) -> str:
        item = await self.get_content_item(content_item_id)
        return item.langcode or "und"

    async def get_term_ids_for_content_item(self, content_item_id: int) -> set[int]:
        """All term ids referenced by the item, across every taxonomy field."""
        result = await self.db.execute(
            select(content_item_terms.c.term_id).where(content_item_terms.c.content_item_id == content_item_id)
        )
        return set(result.scalars().all())

    async def list_content_item_ids(self) -> list[int]:
        result = await self.db.execute(select(ContentItem.id).order_by(ContentItem.id))
        return list(result.scalars().all())

    async def get_content_item_ids_for_terms(self, term_ids: Iterable[int]) -> list[int]:
        wanted = set(term_ids)
        if not wanted:
            return []
        result = await self.db.execute(
            select(content_item_terms.c.content_item_id)
            .where(content_item_terms.c.term_id.in_(wanted))
            .distinct()
            .order_by(content_item_terms.c.content_item_id)
        )
        return list(result.scalars().all())
