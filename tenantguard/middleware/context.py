"""Request context for tenant resolution."""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Query, Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.config import get_settings
from tenantguard.db.session import get_privileged_session_factory, privileged_session
from tenantguard.exceptions import TenantResolutionError
from tenantguard.services.resolver import TenantResolver

# Context variables for request-scoped data (async-safe)
_request_context_var: ContextVar["RequestContext | None"] = ContextVar(
    "request_context", default=None
)


@dataclass
class RequestContext:
    """
    Request-scoped tenant information.

    Lives for one request only. Data access never reads it: the tenant id
    is passed explicitly to every service call.
    """

    request_id: str
    tenant_id: uuid.UUID
    tenant_slug: str
    source: str  # "tenant_id", "tenant_slug", "subdomain" or "domain"

    def log_fields(self) -> dict[str, str]:
        return {
            "tenant_id": str(self.tenant_id),
            "tenant_slug": self.tenant_slug,
        }

    def __repr__(self) -> str:
        return (
            f"RequestContext(request_id={self.request_id}, "
            f"tenant_id={self.tenant_id}, tenant_slug={self.tenant_slug}, "
            f"source={self.source})"
        )


def get_current_context() -> RequestContext | None:
    """
    Get the current request context from contextvars.

    Returns:
        RequestContext if set, None otherwise
    """
    return _request_context_var.get()


def set_current_context(context: RequestContext | None) -> None:
    """
    Set the current request context in contextvars.

    Args:
        context: RequestContext to set, or None to clear it
    """
    _request_context_var.set(context)


def get_resolver() -> TenantResolver:
    return TenantResolver(get_settings().root_domain)


async def get_request_context(
    request: Request,
    session_factory: Annotated[
        async_sessionmaker[AsyncSession], Depends(get_privileged_session_factory)
    ],
    resolver: Annotated[TenantResolver, Depends(get_resolver)],
    tenant_slug: Annotated[str | None, Query()] = None,
    tenant_id: Annotated[str | None, Query()] = None,
    x_tenant_slug: Annotated[str | None, Header()] = None,
) -> RequestContext | None:
    """
    FastAPI dependency that resolves the request's tenant.

    Explicit parameters win over the Host header. Every request resolves
    from scratch; nothing is carried over from earlier requests. The
    owner-role connection used for the lookup goes back to the pool
    before the route handler runs.

    Returns:
        RequestContext if an active tenant matched, None otherwise
    """
    set_current_context(None)
    async with privileged_session(session_factory) as db:
        resolved = await resolver.resolve(
            db,
            host=request.headers.get("host"),
            tenant_slug=tenant_slug or x_tenant_slug,
            tenant_id=tenant_id,
        )
    if resolved is None:
        return None

    context = RequestContext(
        request_id=getattr(request.state, "request_id", None) or str(uuid.uuid4()),
        tenant_id=resolved.tenant.id,
        tenant_slug=resolved.tenant.slug,
        source=resolved.source,
    )
    set_current_context(context)
    request.state.tenant_context = context

    logger.debug(
        "Request context established",
        source=context.source,
        **context.log_fields(),
    )
    return context


async def require_tenant(
    context: Annotated[RequestContext | None, Depends(get_request_context)] = None,
) -> RequestContext:
    """
    FastAPI dependency that requires a resolved tenant.

    Raises:
        TenantResolutionError: answered with a redirect to onboarding
    """
    if not context:
        raise TenantResolutionError("No active tenant for this request")
    return context
