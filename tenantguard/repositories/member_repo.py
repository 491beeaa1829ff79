"""Repository functions for member CRUD on the direct-query path.

Nothing here reads or writes the session tenant context, and the
owner-role connection these run on bypasses the row policies. Every
function therefore takes the tenant scope as a required argument and
filters on it.
"""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantguard.exceptions import InvalidInputError, MemberNotFoundError
from tenantguard.models import Member, MemberRole
from tenantguard.services.scoping import TenantScope


def _apply_tenant_filter(query: Any, scope: TenantScope) -> Any:
    """Restrict a member query to the scoped tenant."""
    return query.where(Member.tenant_id == scope.tenant_id)


def normalize_email(email: str) -> str:
    if not isinstance(email, str) or not email.strip():
        raise InvalidInputError("Member email must not be blank")
    return email.strip().lower()


def require_member_id(member_id: str) -> str:
    if not isinstance(member_id, str) or not member_id.strip():
        raise InvalidInputError("Member id must not be blank")
    return member_id.strip()


async def list_members(db: AsyncSession, scope: TenantScope) -> list[Member]:
    """List the scoped tenant's members, oldest first."""
    query = select(Member).order_by(Member.created_at, Member.id)
    query = _apply_tenant_filter(query, scope)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_member(db: AsyncSession, scope: TenantScope, member_id: str) -> Member | None:
    """Get a member by external identity key if it belongs to the scoped tenant."""
    query = select(Member).where(Member.id == member_id)
    query = _apply_tenant_filter(query, scope)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_member_by_email(db: AsyncSession, scope: TenantScope, email: str) -> Member | None:
    """Emails are unique per tenant, so the same address may exist elsewhere."""
    query = select(Member).where(Member.email == normalize_email(email))
    query = _apply_tenant_filter(query, scope)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_member(
    db: AsyncSession,
    scope: TenantScope,
    *,
    member_id: str,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str | MemberRole = MemberRole.USER,
) -> Member:
    """Create a member attached to the scoped tenant."""
    member_role = MemberRole.parse(role)
    member = Member(
        id=require_member_id(member_id),
        tenant_id=scope.tenant_id,
        email=normalize_email(email),
        first_name=first_name,
        last_name=last_name,
        role=member_role,
    )
    db.add(member)
    await db.flush()
    await db.refresh(member)
    return member


async def update_member(
    db: AsyncSession,
    scope: TenantScope,
    member_id: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str | MemberRole | None = None,
) -> Member:
    """Apply the provided fields; a member of another tenant is not found."""
    member_role = MemberRole.parse(role) if role is not None else None

    member = await get_member(db, scope, member_id)
    if member is None:
        raise MemberNotFoundError(f"Member not found: {member_id}")

    if first_name is not None:
        member.first_name = first_name
    if last_name is not None:
        member.last_name = last_name
    if member_role is not None:
        member.role = member_role

    await db.flush()
    await db.refresh(member)
    return member


async def remove_member(db: AsyncSession, scope: TenantScope, member_id: str) -> None:
    """Delete a member of the scoped tenant."""
    query = delete(Member).where(Member.id == member_id)
    query = _apply_tenant_filter(query, scope)
    result = await db.execute(query)
    if result.rowcount == 0:
        raise MemberNotFoundError(f"Member not found: {member_id}")
