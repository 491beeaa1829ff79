"""Shared route dependencies."""

from typing import Annotated

from fastapi import Depends

from tenantguard.middleware.context import RequestContext, require_tenant
from tenantguard.services.members import MemberService
from tenantguard.services.scoping import TenantScope


def get_member_service(
    ctx: Annotated[RequestContext, Depends(require_tenant)],
) -> MemberService:
    """Member service bound to the tenant resolved for this request."""
    return MemberService(TenantScope(ctx.tenant_id))
