"""Repository functions for tenant lookups.

These run on the owner-role connection before any tenant context exists,
so every query states ``is_active`` explicitly: inactive tenants are
invisible here exactly as if they did not exist.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantguard.models import Tenant
from tenantguard.services.scoping import TenantScope


async def get_active_tenant_by_slug(db: AsyncSession, slug: str) -> Tenant | None:
    result = await db.execute(
        select(Tenant).where(Tenant.slug == slug, Tenant.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_active_tenant_by_id(db: AsyncSession, tenant_id: uuid.UUID) -> Tenant | None:
    result = await db.execute(
        select(Tenant).where(Tenant.id == tenant_id, Tenant.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_active_tenant_by_domain(db: AsyncSession, domain: str) -> Tenant | None:
    result = await db.execute(
        select(Tenant).where(Tenant.domain == domain, Tenant.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_tenant_profile(db: AsyncSession, scope: TenantScope) -> Tenant | None:
    """The scoped tenant's own profile, or None when absent or inactive."""
    return await get_active_tenant_by_id(db, scope.tenant_id)


async def list_active_tenants(db: AsyncSession) -> list[Tenant]:
    """Active tenants ordered by name, for operator tooling."""
    result = await db.execute(
        select(Tenant).where(Tenant.is_active.is_(True)).order_by(Tenant.name)
    )
    return list(result.scalars().all())
