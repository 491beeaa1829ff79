"""Database engines and session management.

Two engines share the process. The application engine connects as the
application role: its statements are subject to the row policies and it
may execute the privileged functions. The privileged engine connects as
the owner role and serves tenant resolution and the direct-query path,
which filter by an explicit tenant id instead of session state.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.exc import TimeoutError as SATimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenantguard.config import Settings, get_settings
from tenantguard.db.rls import set_tenant_context

_engine: AsyncEngine | None = None
_privileged_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_privileged_session_factory: async_sessionmaker[AsyncSession] | None = None


def _async_url(url: str) -> str:
    return url.replace("postgresql://", "postgresql+asyncpg://", 1)


def build_engine(url: str, settings: Settings) -> AsyncEngine:
    """Create an async engine with the configured pool tuning."""
    return create_async_engine(
        _async_url(url),
        echo=settings.log_level == "DEBUG",
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_reset_on_return="rollback",
        connect_args={"statement_cache_size": 0},  # Required for transaction poolers
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the application role engine."""
    global _engine, _session_factory
    if _session_factory is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url.get_secret_value(), settings)
        _session_factory = build_session_factory(_engine)
    return _session_factory


def get_privileged_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the owner role engine."""
    global _privileged_engine, _privileged_session_factory
    if _privileged_session_factory is None:
        settings = get_settings()
        _privileged_engine = build_engine(
            settings.privileged_database_url.get_secret_value(), settings
        )
        _privileged_session_factory = build_session_factory(_privileged_engine)
    return _privileged_session_factory


async def dispose_engines() -> None:
    """Close both pools. Called on application shutdown."""
    global _engine, _privileged_engine, _session_factory, _privileged_session_factory
    for engine in (_engine, _privileged_engine):
        if engine is not None:
            await engine.dispose()
    _engine = _privileged_engine = None
    _session_factory = _privileged_session_factory = None


@asynccontextmanager
async def tenant_scope(
    tenant_id: uuid.UUID | str,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Pin one connection and one transaction to a tenant.

    The tenant context is set transaction-locally as the first statement,
    so setting it and using it cannot land on different pooled
    connections, and commit or rollback discards it before the connection
    goes back to the pool. A cancelled scope invalidates its connection
    instead of returning it.

    Example:
        >>> async with tenant_scope(tenant.id) as session:
        ...     members = await PrivilegedBoundary(session).list_members()
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        async with session.begin():
            await set_tenant_context(session, tenant_id)
            yield session
    except asyncio.CancelledError:
        logger.warning(
            "Tenant scope cancelled, discarding connection",
            tenant_id=str(tenant_id),
        )
        await session.invalidate()
        raise
    except SATimeoutError as exc:
        logger.warning(
            "Database connection pool timeout (possible pool exhaustion)",
            error=str(exc),
        )
        raise
    finally:
        await session.close()


@asynccontextmanager
async def privileged_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Owner-role session in a single transaction.

    Never reads or writes the tenant context. Callers filter every
    statement by an explicit tenant id.
    """
    factory = session_factory or get_privileged_session_factory()
    async with factory() as session:
        async with session.begin():
            yield session
