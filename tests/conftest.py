"""Pytest configuration and fixtures for tests."""

import os

# Settings are read at import time by tenantguard.main; give them values
# before anything from the package is imported.
os.environ.setdefault("TENANTGUARD_DATABASE_URL", "postgresql://tenantguard_app@localhost/tenantguard")
os.environ.setdefault(
    "TENANTGUARD_PRIVILEGED_DATABASE_URL", "postgresql://tenantguard@localhost/tenantguard"
)
os.environ.setdefault("TENANTGUARD_ROOT_DOMAIN", "example.com")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenantguard.db.base import Base  # noqa: E402
from tenantguard.models import Member, MemberRole, Tenant  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """SQLite-backed session factory standing in for the owner-role engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tenantguard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def tenants(session_factory) -> dict[str, Tenant]:
    """Two active tenants (acme, beta) with one member each, plus an inactive one."""
    async with session_factory() as session:
        acme = Tenant(name="Acme Agency", slug="acme", domain="portal.acme.test")
        beta = Tenant(name="Beta Agency", slug="beta")
        dormant = Tenant(name="Dormant Agency", slug="dormant", is_active=False)
        session.add_all([acme, beta, dormant])
        await session.flush()
        session.add_all(
            [
                Member(
                    id="acme-admin",
                    tenant_id=acme.id,
                    email="admin@acme.test",
                    role=MemberRole.ADMIN,
                ),
                Member(
                    id="beta-admin",
                    tenant_id=beta.id,
                    email="admin@beta.test",
                    role=MemberRole.ADMIN,
                ),
            ]
        )
        await session.commit()
    return {"acme": acme, "beta": beta, "dormant": dormant}
