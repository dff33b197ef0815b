"""
TermPermission Model

A row means "principal X may access content classified with term T".
Terms without any row are unrestricted. principal_id holds the user id
as a string for USER rows and the role name for ROLE rows.
"""

from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, String, UniqueConstraint

from term_access.constants import PrincipalKind
from term_access.database import Base


class TermPermission(Base):
    __tablename__ = "term_permissions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    term_id = Column(
        Integer,
        ForeignKey("taxonomy_terms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_kind = Column(
        Enum(PrincipalKind, name="principal_kind", values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
    )
    principal_id = Column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint("term_id", "principal_kind", "principal_id", name="uq_term_permission_principal"),
        Index("ix_term_perm_principal", "principal_kind", "principal_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TermPermission(term={self.term_id}, "
            f"{self.principal_kind.value}={self.principal_id})>"
        )
