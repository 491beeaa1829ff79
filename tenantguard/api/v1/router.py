from fastapi import APIRouter, Request

from tenantguard import __version__
from tenantguard.api.responses import StandardResponse, success
from tenantguard.api.v1 import members, tenants
from tenantguard.config import get_settings

router = APIRouter()

# Include routers
router.include_router(tenants.router)
router.include_router(members.router)


@router.get("/health", response_model=StandardResponse[dict])
async def health_check(request: Request):
    """
    Health check endpoint.

    Needs no tenant and touches no database.
    """
    settings = get_settings()

    return success({
        "status": "ok",
        "environment": settings.environment,
        "version": __version__,
        "direct_query_operations": sorted(settings.direct_query_operations),
    }, request_id=request.state.request_id)
