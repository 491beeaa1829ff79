"""Middleware package."""

from tenantguard.middleware.context import (
    RequestContext,
    get_current_context,
    get_request_context,
    require_tenant,
    set_current_context,
)

__all__ = [
    "RequestContext",
    "get_current_context",
    "get_request_context",
    "require_tenant",
    "set_current_context",
]
