"""
Access Control Constants

Realm name, reserved gids, operation names and cache tags shared by the
decision engine, the grant index and the invalidation layer.
"""

from enum import Enum

# Namespace of the grant records this package writes
GRANT_REALM = "permissions_by_term"

# Content without restricted terms lands in the open policy bucket.
# Every principal is a member of it.
OPEN_POLICY_GID = 0
OPEN_POLICY_KEY = "open"


class PrincipalKind(str, Enum):
    """Subject type of a term permission record."""

    USER = "user"
    ROLE = "role"


class Operation(str, Enum):
    """Operations a grant record can allow."""

    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"


class AccessResult(str, Enum):
    """Outcome of a single-item access check."""

    ALLOW = "allow"
    DENY = "deny"


class CacheTag:
    """Cache tags emitted when visibility may have changed."""

    CONTENT_LIST = "node_list"
    SEARCH_INDEX = "search_index"

    @staticmethod
    def content(content_item_id: int) -> str:
        return f"node:{content_item_id}"

    @staticmethod
    def term(term_id: int) -> str:
        return f"taxonomy_term:{term_id}"

    @staticmethod
    def user(user_id: int) -> str:
        return f"user:{user_id}"
