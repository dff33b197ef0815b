from .content import ContentItem, content_item_terms
from .node_access_grant import AccessPolicy, GidSequence, NodeAccessGrant
from .term import Term, term_hierarchy
from .term_permission import TermPermission
from .user import Role, User, user_roles

__all__ = [
    "AccessPolicy",
    "ContentItem",
    "content_item_terms",
    "GidSequence",
    "NodeAccessGrant",
    "Role",
    "Term",
    "term_hierarchy",
    "TermPermission",
    "User",
    "user_roles",
]
