"""Tests for the direct-query member repository."""

import pytest
from sqlalchemy import func, select

from tenantguard.exceptions import InvalidInputError, MemberNotFoundError
from tenantguard.models import Member, MemberRole
from tenantguard.repositories import member_repo, tenant_repo
from tenantguard.services.scoping import TenantScope


@pytest.fixture
def acme(tenants) -> TenantScope:
    return TenantScope.of(tenants["acme"])


@pytest.fixture
def beta(tenants) -> TenantScope:
    return TenantScope.of(tenants["beta"])


async def _count_members(db) -> int:
    result = await db.execute(select(func.count()).select_from(Member))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_list_members_only_returns_scoped_tenant(db, acme, beta):
    acme_members = await member_repo.list_members(db, acme)
    beta_members = await member_repo.list_members(db, beta)

    assert [m.id for m in acme_members] == ["acme-admin"]
    assert [m.id for m in beta_members] == ["beta-admin"]


@pytest.mark.asyncio
async def test_create_member_uses_scope_tenant(db, acme):
    member = await member_repo.create_member(
        db,
        acme,
        member_id="acme-user",
        email="  New.User@Acme.TEST ",
        first_name="New",
        last_name="User",
    )
    await db.commit()

    assert member.tenant_id == acme.tenant_id
    assert member.email == "new.user@acme.test"
    assert member.role is MemberRole.USER
    assert member.created_at is not None


@pytest.mark.asyncio
async def test_create_member_invalid_role_inserts_nothing(db, acme):
    before = await _count_members(db)

    with pytest.raises(InvalidInputError):
        await member_repo.create_member(
            db, acme, member_id="acme-owner", email="owner@acme.test", role="OWNER"
        )

    assert await _count_members(db) == before


@pytest.mark.asyncio
@pytest.mark.parametrize(("member_id", "email"), [("", "x@acme.test"), ("acme-x", "  ")])
async def test_create_member_requires_id_and_email(db, acme, member_id, email):
    with pytest.raises(InvalidInputError):
        await member_repo.create_member(db, acme, member_id=member_id, email=email)


@pytest.mark.asyncio
async def test_get_member_of_other_tenant_is_none(db, acme):
    assert await member_repo.get_member(db, acme, "acme-admin") is not None
    assert await member_repo.get_member(db, acme, "beta-admin") is None


@pytest.mark.asyncio
async def test_get_member_by_email_is_scoped(db, acme, beta):
    member = await member_repo.get_member_by_email(db, acme, "ADMIN@acme.test")
    assert member.id == "acme-admin"
    assert await member_repo.get_member_by_email(db, beta, "admin@acme.test") is None


@pytest.mark.asyncio
async def test_update_member_partial(db, acme):
    member = await member_repo.update_member(db, acme, "acme-admin", first_name="Ada")
    await db.commit()

    assert member.first_name == "Ada"
    assert member.role is MemberRole.ADMIN


@pytest.mark.asyncio
async def test_update_member_of_other_tenant_not_found(db, acme):
    with pytest.raises(MemberNotFoundError):
        await member_repo.update_member(db, acme, "beta-admin", role="USER")

    result = await db.execute(select(Member).where(Member.id == "beta-admin"))
    assert result.scalar_one().role is MemberRole.ADMIN


@pytest.mark.asyncio
async def test_update_member_rejects_unknown_role(db, acme):
    with pytest.raises(InvalidInputError):
        await member_repo.update_member(db, acme, "acme-admin", role="OWNER")


@pytest.mark.asyncio
async def test_remove_member_of_other_tenant_not_found(db, acme):
    with pytest.raises(MemberNotFoundError):
        await member_repo.remove_member(db, acme, "beta-admin")

    assert await _count_members(db) == 2


@pytest.mark.asyncio
async def test_remove_member(db, acme):
    await member_repo.remove_member(db, acme, "acme-admin")
    await db.commit()

    assert await member_repo.list_members(db, acme) == []


@pytest.mark.asyncio
async def test_tenant_profile_and_active_listing(db, tenants, acme):
    profile = await tenant_repo.get_tenant_profile(db, acme)
    assert profile.slug == "acme"

    active = await tenant_repo.list_active_tenants(db)
    assert [t.slug for t in active] == ["acme", "beta"]


@pytest.mark.asyncio
async def test_inactive_tenant_has_no_profile(db, tenants):
    scope = TenantScope.of(tenants["dormant"])
    assert await tenant_repo.get_tenant_profile(db, scope) is None
