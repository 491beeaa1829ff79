"""Member management endpoints for the request's tenant."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from loguru import logger

from tenantguard.api.deps import get_member_service
from tenantguard.api.responses import StandardResponse, success
from tenantguard.api.v1.schemas import (
    CreateMemberRequest,
    MemberListResponse,
    MemberOut,
    UpdateMemberRequest,
)
from tenantguard.services.members import MemberService

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=StandardResponse[MemberListResponse])
async def list_members(
    request: Request,
    service: Annotated[MemberService, Depends(get_member_service)],
):
    """List members of the request's tenant."""
    members = await service.list_members()

    logger.info("Members listed", tenant_id=str(service.scope), count=len(members))

    return success(
        MemberListResponse(
            members=[MemberOut.model_validate(member) for member in members],
            total=len(members),
        ),
        request_id=request.state.request_id,
    )


@router.post(
    "",
    response_model=StandardResponse[MemberOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_member(
    request: Request,
    body: CreateMemberRequest,
    service: Annotated[MemberService, Depends(get_member_service)],
):
    """
    Create a member in the request's tenant.

    A ``tenant_id`` in the body is ignored; the member always joins the
    tenant the request resolved to.
    """
    if body.tenant_id is not None and body.tenant_id != service.scope.tenant_id:
        logger.warning(
            "Ignoring tenant_id supplied in member payload",
            tenant_id=str(service.scope),
            supplied_tenant_id=str(body.tenant_id),
        )

    member = await service.create_member(
        member_id=body.id,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )
    return success(MemberOut.model_validate(member), request_id=request.state.request_id)


@router.patch("/{member_id}", response_model=StandardResponse[MemberOut])
async def update_member(
    request: Request,
    member_id: str,
    body: UpdateMemberRequest,
    service: Annotated[MemberService, Depends(get_member_service)],
):
    """Update a member of the request's tenant. Unknown or foreign ids are 404."""
    member = await service.update_member(
        member_id,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )
    return success(MemberOut.model_validate(member), request_id=request.state.request_id)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    member_id: str,
    service: Annotated[MemberService, Depends(get_member_service)],
    x_acting_member_id: Annotated[str | None, Header()] = None,
) -> None:
    """Remove a member of the request's tenant. Unknown or foreign ids are 404."""
    await service.remove_member(member_id, acting_member_id=x_acting_member_id)
