"""Row-Level Security (RLS) utilities for multi-tenancy."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from tenantguard.db.functions import privileged_functions
from tenantguard.db.policies import TENANT_POLICIES
from tenantguard.exceptions import (
    InvalidInputError,
    IsolationConfigurationError,
    TenantContextError,
)

Executor = AsyncSession | AsyncConnection


def normalize_tenant_id(tenant_id: uuid.UUID | str) -> str:
    """Canonical text form of a tenant id; rejects blanks and non-UUIDs."""
    if isinstance(tenant_id, uuid.UUID):
        return str(tenant_id)
    if not isinstance(tenant_id, str) or not tenant_id.strip():
        raise InvalidInputError("Tenant id must not be blank")
    try:
        return str(uuid.UUID(tenant_id.strip()))
    except ValueError:
        raise InvalidInputError(f"Tenant id is not a valid UUID: {tenant_id!r}") from None


async def set_tenant_context(db: Executor, tenant_id: uuid.UUID | str) -> None:
    """
    Set the tenant context for the current transaction.

    Writes the session configuration key through ``set_current_tenant_id``.
    The value is transaction-scoped: it disappears on commit or rollback,
    so it must be set inside the same transaction that uses it. Calling
    again replaces the previous value.

    Args:
        db: Session or connection about to run tenant-scoped statements
        tenant_id: Tenant UUID

    Raises:
        InvalidInputError: If the tenant id is blank or malformed
        TenantContextError: If the database rejects the write

    Example:
        >>> async with session.begin():
        ...     await set_tenant_context(session, tenant.id)
        ...     members = await boundary.list_members()
    """
    tenant_id_str = normalize_tenant_id(tenant_id)

    try:
        await db.execute(
            text("SELECT set_current_tenant_id(:tenant_id)"),
            {"tenant_id": tenant_id_str},
        )
    except DBAPIError as exc:
        logger.error(
            "Tenant context write rejected",
            tenant_id=tenant_id_str,
            error=str(exc.orig),
        )
        raise TenantContextError(
            "Database rejected the tenant context write",
            details={"tenant_id": tenant_id_str},
        ) from exc

    logger.debug("Tenant context set", tenant_id=tenant_id_str)


async def get_tenant_context(db: Executor) -> str | None:
    """
    Get the current tenant context.

    Returns:
        Tenant id string, or None if unset or cleared
    """
    result = await db.execute(text("SELECT get_current_tenant_id()"))
    tenant_id = result.scalar_one_or_none()
    return tenant_id or None


async def clear_tenant_context(db: Executor) -> None:
    """Clear the tenant context; privileged calls fail until it is set again."""
    await db.execute(text("SELECT clear_current_tenant_id()"))
    logger.debug("Tenant context cleared")


@dataclass
class IsolationReport:
    """What ``verify_isolation`` found in the database catalog."""

    rls_enabled: dict[str, bool] = field(default_factory=dict)
    policies: dict[str, list[str]] = field(default_factory=dict)
    security_definer: dict[str, bool] = field(default_factory=dict)

    @property
    def problems(self) -> list[str]:
        found: list[str] = []
        for policy in TENANT_POLICIES:
            if not self.rls_enabled.get(policy.table):
                found.append(f"row level security disabled on {policy.table}")
            if policy.name not in self.policies.get(policy.table, []):
                found.append(f"policy {policy.name} missing on {policy.table}")
        for name, definer in self.security_definer.items():
            if not definer:
                found.append(f"function {name} is not SECURITY DEFINER")
        return found

    @property
    def ok(self) -> bool:
        return not self.problems

    def raise_for_problems(self) -> None:
        if self.problems:
            raise IsolationConfigurationError(
                "Tenant isolation is not fully installed",
                details={"problems": self.problems},
            )


async def verify_isolation(db: Executor, context_key: str) -> IsolationReport:
    """Inspect the catalog for row security, policies and privileged functions."""
    report = IsolationReport()
    tables = [policy.table for policy in TENANT_POLICIES]

    result = await db.execute(
        text(
            "SELECT relname, relrowsecurity FROM pg_class "
            "WHERE relkind = 'r' AND relname = ANY(:tables)"
        ),
        {"tables": tables},
    )
    report.rls_enabled = {name: bool(enabled) for name, enabled in result.all()}

    result = await db.execute(
        text("SELECT tablename, policyname FROM pg_policies WHERE tablename = ANY(:tables)"),
        {"tables": tables},
    )
    for table, policy_name in result.all():
        report.policies.setdefault(table, []).append(policy_name)

    expected = [fn.name for fn in privileged_functions(context_key) if fn.security_definer]
    result = await db.execute(
        text("SELECT proname, prosecdef FROM pg_proc WHERE proname = ANY(:names)"),
        {"names": expected},
    )
    found = {name: bool(definer) for name, definer in result.all()}
    report.security_definer = {name: found.get(name, False) for name in expected}

    if report.ok:
        logger.info("Tenant isolation verified", tables=tables)
    else:
        logger.warning("Tenant isolation incomplete", problems=report.problems)
    return report
