"""Error codes returned in the standard error envelope."""

INTERNAL_ERROR = "INTERNAL_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
CONFLICT_ERROR = "CONFLICT_ERROR"
TENANT_NOT_RESOLVED = "TENANT_NOT_RESOLVED"

# Internal reasons. Logged, never returned to callers.
TENANT_CONTEXT_NOT_SET = "TENANT_CONTEXT_NOT_SET"
TENANT_CONTEXT_WRITE_FAILED = "TENANT_CONTEXT_WRITE_FAILED"
INVALID_INPUT = "INVALID_INPUT"
MEMBER_NOT_IN_TENANT = "MEMBER_NOT_IN_TENANT"
ISOLATION_MISCONFIGURED = "ISOLATION_MISCONFIGURED"

# SQLSTATEs raised by the privileged functions.
SQLSTATE_TENANT_CONTEXT_NOT_SET = "TG001"
SQLSTATE_INVALID_INPUT = "TG002"
SQLSTATE_NOT_FOUND = "TG003"
SQLSTATE_UNIQUE_VIOLATION = "23505"
