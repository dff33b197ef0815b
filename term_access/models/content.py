from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table
from term_access.database import Base

# Term references across every taxonomy field of a content item
content_item_terms = Table(
    "content_item_terms",
    Base.metadata,
    Column("content_item_id", Integer, ForeignKey("content_items.id", ondelete="CASCADE"), primary_key=True),
    Column("term_id", Integer, ForeignKey("taxonomy_terms.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("field_name", String(64), primary_key=True, default="field_tags"),
)


class ContentItem(Base):
    __tablename__ = "content_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    published = Column(Boolean, nullable=False, default=True)
    langcode = Column(String(12), nullable=False, default="und")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ContentItem(id={self.id}, published={self.published})>"
