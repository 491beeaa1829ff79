"""Current tenant endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from loguru import logger

from tenantguard.api.deps import get_member_service
from tenantguard.api.responses import StandardResponse, success
from tenantguard.api.v1.schemas import TenantContextInfo, TenantProfile
from tenantguard.exceptions import NotFoundError
from tenantguard.middleware.context import RequestContext, require_tenant
from tenantguard.services.members import MemberService

router = APIRouter(prefix="/tenant", tags=["tenant"])


@router.get("", response_model=StandardResponse[TenantProfile])
async def get_tenant_profile(
    request: Request,
    service: Annotated[MemberService, Depends(get_member_service)],
):
    """
    Get the profile of the tenant this request resolved to.

    Raises:
        NotFoundError: If the tenant has no visible profile
    """
    tenant = await service.get_profile()
    if tenant is None:
        raise NotFoundError("Tenant profile not found")

    return success(
        TenantProfile.model_validate(tenant),
        request_id=request.state.request_id,
    )


@router.get("/context", response_model=StandardResponse[TenantContextInfo])
async def get_tenant_context_info(
    request: Request,
    ctx: Annotated[RequestContext, Depends(require_tenant)],
    service: Annotated[MemberService, Depends(get_member_service)],
):
    """
    Report the resolved tenant and the value the database session sees.

    The two must agree; the session value is read inside the same pinned
    transaction that sets it.
    """
    session_tenant_id = None
    if service.uses_privileged_path:
        session_tenant_id = await service.context()

    logger.info("Tenant context requested", source=ctx.source, **ctx.log_fields())

    return success(
        TenantContextInfo(
            tenant_id=ctx.tenant_id,
            tenant_slug=ctx.tenant_slug,
            source=ctx.source,
            session_tenant_id=session_tenant_id,
        ),
        request_id=request.state.request_id,
    )
