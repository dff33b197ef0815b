"""
NodeAccessGrant and AccessPolicy Models

node_access_grants is the denormalized table the host's listing and
search queries join against. access_policies remembers which restricted
term set each gid stands for. Both are derived data and can be rebuilt
from term_permissions and content_item_terms at any time.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String

from term_access.constants import GRANT_REALM
from term_access.database import Base


class NodeAccessGrant(Base):
    __tablename__ = "node_access_grants"

    content_item_id = Column(
        Integer,
        ForeignKey("content_items.id", ondelete="CASCADE"),
        primary_key=True,
    )
    gid = Column(Integer, primary_key=True, index=True)
    realm = Column(String(255), primary_key=True, default=GRANT_REALM)
    language = Column(String(12), primary_key=True, default="und")
    grant_view = Column(Boolean, nullable=False, default=False)
    grant_update = Column(Boolean, nullable=False, default=False)
    grant_delete = Column(Boolean, nullable=False, default=False)
    fallback = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return (
            f"<NodeAccessGrant(content={self.content_item_id}, gid={self.gid}, realm={self.realm!r}, "
            f"view={self.grant_view}, update={self.grant_update}, delete={self.grant_delete})>"
        )


class AccessPolicy(Base):
    __tablename__ = "access_policies"

    gid = Column(Integer, primary_key=True, autoincrement=False)
    # Canonical form of the restricted term set, e.g. "3,7,8"
    policy_key = Column(String(1024), unique=True, nullable=False)
    term_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<AccessPolicy(gid={self.gid}, key={self.policy_key!r})>"


class GidSequence(Base):
    """Single-row high-water mark of every gid ever handed out. Never lowered."""

    __tablename__ = "access_policy_gid_sequence"

    id = Column(Integer, primary_key=True, autoincrement=False, default=1)
    last_gid = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<GidSequence(last_gid={self.last_gid})>"
