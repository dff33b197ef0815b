"""
Tests for custom exception classes

Tests exception initialization, messages, status codes, error codes and details.
"""

from fastapi import status

from term_access.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ContentNotFoundError,
    ErrorCode,
    GrantIndexError,
    HierarchyError,
    ResourceNotFoundError,
    TermAccessError,
    TermNotFoundError,
    UserNotFoundError,
    ValidationError,
)


class TestTermAccessError:
    """Test base TermAccessError class"""

    def test_defaults(self):
        exc = TermAccessError("Test error")
        assert str(exc) == "Test error"
        assert exc.message == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}
        assert exc.error_code == ErrorCode.INTERNAL_ERROR

    def test_error_code_override(self):
        exc = TermAccessError("Busy", status_code=503, error_code=ErrorCode.SERVICE_UNAVAILABLE)
        assert exc.error_code == ErrorCode.SERVICE_UNAVAILABLE
        assert TermAccessError.error_code == ErrorCode.INTERNAL_ERROR


class TestAuthExceptions:
    """Test authentication and authorization exceptions"""

    def test_authentication_error(self):
        exc = AuthenticationError()
        assert exc.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc.error_code == ErrorCode.AUTH_FAILED

    def test_authorization_error_carries_capability(self):
        exc = AuthorizationError(required_capability="permissions.manage")
        assert exc.status_code == status.HTTP_403_FORBIDDEN
        assert exc.details == {"required_capability": "permissions.manage"}


class TestNotFoundExceptions:
    """Test resource not found exceptions"""

    def test_resource_not_found(self):
        exc = ResourceNotFoundError("Widget", 3)
        assert exc.message == "Widget with id '3' not found"
        assert exc.status_code == status.HTTP_404_NOT_FOUND

    def test_term_not_found_by_id(self):
        exc = TermNotFoundError(7)
        assert exc.message == "Term with id '7' not found"
        assert exc.error_code == ErrorCode.RESOURCE_TERM_NOT_FOUND
        assert isinstance(exc, ResourceNotFoundError)

    def test_term_not_found_by_name(self):
        exc = TermNotFoundError(name="Legal")
        assert exc.message == "Term named 'Legal' not found"
        assert str(exc) == exc.message
        assert exc.details["name"] == "Legal"

    def test_content_and_user_not_found(self):
        assert ContentNotFoundError(10).error_code == ErrorCode.RESOURCE_CONTENT_NOT_FOUND
        assert UserNotFoundError(2).details["resource_type"] == "User"


class TestDomainExceptions:
    """Test validation, hierarchy and grant index exceptions"""

    def test_validation_error_sorts_details(self):
        exc = ValidationError("bad", unknown_user_ids=[9, 3], unknown_role_ids=["z", "a"], term_id=7)
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"term_id": 7, "unknown_user_ids": [3, 9], "unknown_role_ids": ["a", "z"]}

    def test_validation_error_omits_empty_lists(self):
        exc = ValidationError("bad", unknown_user_ids=[], unknown_role_ids=["ghost"])
        assert exc.details == {"unknown_role_ids": ["ghost"]}

    def test_hierarchy_error(self):
        exc = HierarchyError(21, "cycle through term 7")
        assert exc.message == "Malformed term hierarchy at term 21: cycle through term 7"
        assert exc.error_code == ErrorCode.HIERARCHY_INVALID

    def test_grant_index_error(self):
        exc = GrantIndexError(operation="rebuild_all")
        assert exc.details == {"operation": "rebuild_all"}
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
