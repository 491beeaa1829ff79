"""Custom application exceptions mapped to API errors."""

from __future__ import annotations

from typing import Any

from tenantguard import error_codes


class TenantGuardException(Exception):
    status_code = 500
    code = error_codes.INTERNAL_ERROR
    # Internal reason, logged but not returned.
    reason: str | None = None
    # When set, replaces the message in API responses.
    public_message: str | None = None

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(TenantGuardException):
    status_code = 404
    code = error_codes.NOT_FOUND


class AuthenticationError(TenantGuardException):
    status_code = 401
    code = error_codes.AUTHENTICATION_ERROR


class AuthorizationError(TenantGuardException):
    status_code = 403
    code = error_codes.AUTHORIZATION_ERROR


class ValidationError(TenantGuardException):
    status_code = 422
    code = error_codes.VALIDATION_ERROR


class ConflictError(TenantGuardException):
    status_code = 409
    code = error_codes.CONFLICT_ERROR


class TenantResolutionError(TenantGuardException):
    """No active tenant matches the request. Answered with a redirect."""

    status_code = 307
    code = error_codes.TENANT_NOT_RESOLVED


class TenantContextNotSetError(AuthorizationError):
    """A privileged operation ran without a tenant context on its connection."""

    reason = error_codes.TENANT_CONTEXT_NOT_SET
    public_message = "Access denied"

    def __init__(
        self,
        message: str = "tenant context not set - call set_current_tenant_id first",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class TenantContextError(AuthorizationError):
    """The connection rejected the tenant context write."""

    reason = error_codes.TENANT_CONTEXT_WRITE_FAILED
    public_message = "Access denied"


class InvalidInputError(ValidationError):
    """A mutation supplied a value outside its closed set."""

    reason = error_codes.INVALID_INPUT


class MemberNotFoundError(NotFoundError):
    """Member is absent or belongs to another tenant; both look the same."""

    reason = error_codes.MEMBER_NOT_IN_TENANT
    public_message = "Resource not found"


class IsolationConfigurationError(TenantGuardException):
    """Row security or privileged functions are not installed as expected."""

    reason = error_codes.ISOLATION_MISCONFIGURED
