"""Client for the privileged function boundary.

``PrivilegedBoundary`` is the closed set of operations the application
role may perform on tenant data. Each method calls one server-side
function that reads the tenant from the session context, so the session
must come from ``tenant_scope`` (or have had ``set_context`` called in the
same transaction).
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantguard import error_codes
from tenantguard.db.rls import clear_tenant_context, get_tenant_context, set_tenant_context
from tenantguard.exceptions import (
    ConflictError,
    InvalidInputError,
    MemberNotFoundError,
    TenantContextNotSetError,
)
from tenantguard.models import Member, MemberRole, Tenant
from tenantguard.repositories.member_repo import normalize_email, require_member_id


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _db_message(exc: DBAPIError) -> str:
    # asyncpg errors render as "<class 'asyncpg...'>: message"
    return str(exc.orig).split(": ", 1)[-1]


@contextmanager
def translate_boundary_errors(operation: str) -> Iterator[None]:
    """Map SQLSTATEs raised by the privileged functions onto exceptions."""
    try:
        yield
    except DBAPIError as exc:
        sqlstate = _sqlstate(exc)
        if sqlstate == error_codes.SQLSTATE_TENANT_CONTEXT_NOT_SET:
            logger.warning("Privileged call without tenant context", operation=operation)
            raise TenantContextNotSetError(details={"operation": operation}) from exc
        if sqlstate == error_codes.SQLSTATE_INVALID_INPUT:
            logger.warning("Privileged call rejected input", operation=operation)
            raise InvalidInputError(_db_message(exc)) from exc
        if sqlstate == error_codes.SQLSTATE_NOT_FOUND:
            logger.warning(
                "Member not found in current tenant",
                operation=operation,
                reason=error_codes.MEMBER_NOT_IN_TENANT,
            )
            raise MemberNotFoundError(_db_message(exc)) from exc
        if sqlstate == error_codes.SQLSTATE_UNIQUE_VIOLATION:
            raise ConflictError("Resource conflict") from exc
        raise


class PrivilegedBoundary:
    """Closed set of tenant-scoped operations backed by SECURITY DEFINER functions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def set_context(self, tenant_id: uuid.UUID | str) -> None:
        await set_tenant_context(self.session, tenant_id)

    async def get_context(self) -> str | None:
        return await get_tenant_context(self.session)

    async def clear_context(self) -> None:
        await clear_tenant_context(self.session)

    async def list_members(self) -> list[Member]:
        """Members of the current tenant only."""
        query = (
            select(Member)
            .from_statement(text("SELECT * FROM get_tenant_members()"))
            .execution_options(populate_existing=True)
        )
        with translate_boundary_errors("list_members"):
            result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_profile(self) -> Tenant | None:
        """The current tenant's own profile, or None when absent or inactive."""
        query = (
            select(Tenant)
            .from_statement(text("SELECT * FROM get_current_tenant()"))
            .execution_options(populate_existing=True)
        )
        with translate_boundary_errors("get_profile"):
            result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_member(
        self,
        member_id: str,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | MemberRole = MemberRole.USER,
    ) -> Member:
        """
        Create a member in the current tenant.

        The tenant comes from the session context inside the function; no
        caller-supplied tenant id reaches the insert.

        Returns:
            The created member row
        """
        member_role = MemberRole.parse(role)
        query = (
            select(Member)
            .from_statement(
                text(
                    "SELECT * FROM create_tenant_member("
                    ":member_id, :email, :first_name, :last_name, :role)"
                ).bindparams(
                    member_id=require_member_id(member_id),
                    email=normalize_email(email),
                    first_name=first_name,
                    last_name=last_name,
                    role=member_role.value,
                )
            )
            .execution_options(populate_existing=True)
        )
        with translate_boundary_errors("create_member"):
            result = await self.session.execute(query)
        member = result.scalar_one()
        logger.info("Member created", member_id=member.id, path="privileged")
        return member

    async def update_member(
        self,
        member_id: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | MemberRole | None = None,
    ) -> Member:
        """Update the provided fields of a member of the current tenant."""
        member_role = MemberRole.parse(role) if role is not None else None
        query = (
            select(Member)
            .from_statement(
                text(
                    "SELECT * FROM update_tenant_member("
                    ":member_id, :first_name, :last_name, :role)"
                ).bindparams(
                    member_id=member_id,
                    first_name=first_name,
                    last_name=last_name,
                    role=member_role.value if member_role else None,
                )
            )
            .execution_options(populate_existing=True)
        )
        with translate_boundary_errors("update_member"):
            result = await self.session.execute(query)
        member = result.scalar_one()
        logger.info("Member updated", member_id=member.id, path="privileged")
        return member

    async def remove_member(self, member_id: str) -> None:
        with translate_boundary_errors("remove_member"):
            await self.session.execute(
                text("SELECT remove_tenant_member(:member_id)"),
                {"member_id": member_id},
            )
        logger.info("Member removed", member_id=member_id, path="privileged")
