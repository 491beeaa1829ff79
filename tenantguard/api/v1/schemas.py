"""Request and response models for the v1 API."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tenantguard.models import MemberRole


class TenantProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    domain: str | None = None
    description: str | None = None
    is_active: bool
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class TenantContextInfo(BaseModel):
    tenant_id: uuid.UUID = Field(..., description="Tenant resolved for this request")
    tenant_slug: str
    source: str = Field(..., description="How the tenant was resolved")
    session_tenant_id: str | None = Field(
        None, description="Tenant id the database session saw (None on the direct-query path)"
    )


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: uuid.UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None
    role: MemberRole
    created_at: datetime
    updated_at: datetime


class CreateMemberRequest(BaseModel):
    """Request model for creating a member in the request's tenant."""

    id: str = Field(..., min_length=1, max_length=255, description="External identity key")
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    # Free text so unknown roles reach the closed-set check and come back
    # as INVALID_INPUT rather than a schema error.
    role: str = Field(default=MemberRole.USER.value, max_length=32)
    tenant_id: uuid.UUID | None = Field(
        None, description="Ignored: members always join the request's tenant"
    )


class UpdateMemberRequest(BaseModel):
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    role: str | None = Field(None, max_length=32)


class MemberListResponse(BaseModel):
    members: list[MemberOut]
    total: int
