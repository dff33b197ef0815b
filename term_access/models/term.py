from sqlalchemy import Column, ForeignKey, Integer, String, Table
from term_access.database import Base

# A term may have several parents; root terms have no rows here.
term_hierarchy = Table(
    "taxonomy_term_hierarchy",
    Base.metadata,
    Column("term_id", Integer, ForeignKey("taxonomy_terms.id", ondelete="CASCADE"), primary_key=True),
    Column("parent_id", Integer, ForeignKey("taxonomy_terms.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Term(Base):
    __tablename__ = "taxonomy_terms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    vocabulary = Column(String(64), index=True, nullable=False, default="tags")

    def __repr__(self) -> str:
        return f"<Term(id={self.id}, name={self.name!r}, vocabulary={self.vocabulary!r})>"
