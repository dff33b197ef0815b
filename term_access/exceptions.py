"""
Custom Exception Classes for Term Access

This module defines the exceptions raised by the access-control services
and the machine-readable error codes rendered by the exception handlers.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes included in every error response."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_TERM_NOT_FOUND = "RESOURCE_TERM_NOT_FOUND"
    RESOURCE_CONTENT_NOT_FOUND = "RESOURCE_CONTENT_NOT_FOUND"
    RESOURCE_USER_NOT_FOUND = "RESOURCE_USER_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_UNKNOWN_PRINCIPAL = "VALIDATION_UNKNOWN_PRINCIPAL"
    HIERARCHY_INVALID = "HIERARCHY_INVALID"
    GRANT_INDEX_FAILED = "GRANT_INDEX_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class TermAccessError(Exception):
    """Base exception class for all access-control exceptions"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(TermAccessError):
    """Raised when the bearer token cannot be validated"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details or {})


class AuthorizationError(TermAccessError):
    """Raised when the principal lacks a capability for an action"""

    error_code = ErrorCode.AUTH_PERMISSION_DENIED

    def __init__(
        self, message: str = "You do not have permission to perform this action", required_capability: str | None = None
    ):
        details = {"required_capability": required_capability} if required_capability else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(TermAccessError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TermNotFoundError(ResourceNotFoundError):
    """Raised when a term id or name does not resolve"""

    error_code = ErrorCode.RESOURCE_TERM_NOT_FOUND

    def __init__(self, term_id: Any | None = None, name: str | None = None):
        super().__init__(resource_type="Term", resource_id=term_id)
        if name is not None:
            self.message = f"Term named '{name}' not found"
            self.details["name"] = name
            self.args = (self.message,)


class ContentNotFoundError(ResourceNotFoundError):
    """Raised when a content item is not found"""

    error_code = ErrorCode.RESOURCE_CONTENT_NOT_FOUND

    def __init__(self, content_item_id: Any | None = None):
        super().__init__(resource_type="Content item", resource_id=content_item_id)


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is not found"""

    error_code = ErrorCode.RESOURCE_USER_NOT_FOUND

    def __init__(self, user_id: Any | None = None):
        super().__init__(resource_type="User", resource_id=user_id)


# ============================================================================
# Validation & Hierarchy Exceptions
# ============================================================================


class ValidationError(TermAccessError):
    """Raised when a permission save references principals the identity system does not know"""

    error_code = ErrorCode.VALIDATION_UNKNOWN_PRINCIPAL

    def __init__(
        self,
        message: str,
        unknown_user_ids: list[int] | None = None,
        unknown_role_ids: list[str] | None = None,
        term_id: int | None = None,
    ):
        details: dict[str, Any] = {}
        if term_id is not None:
            details["term_id"] = term_id
        if unknown_user_ids:
            details["unknown_user_ids"] = sorted(unknown_user_ids)
        if unknown_role_ids:
            details["unknown_role_ids"] = sorted(unknown_role_ids)
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnsupportedOperationError(TermAccessError):
    """Raised when a hook is called with an operation other than view, update or delete"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, operation: Any):
        super().__init__(
            message=f"Unsupported operation '{operation}'",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"operation": str(operation)},
        )


class HierarchyError(TermAccessError):
    """Raised when the term tree is cyclic or deeper than the traversal cap"""

    error_code = ErrorCode.HIERARCHY_INVALID

    def __init__(self, term_id: int, reason: str):
        super().__init__(
            message=f"Malformed term hierarchy at term {term_id}: {reason}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"term_id": term_id, "reason": reason},
        )


# ============================================================================
# Grant Index Exceptions
# ============================================================================


class GrantIndexError(TermAccessError):
    """Raised when grant records cannot be written"""

    error_code = ErrorCode.GRANT_INDEX_FAILED

    def __init__(self, message: str = "Failed to update grant records", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
