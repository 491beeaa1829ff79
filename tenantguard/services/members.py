"""Member operations for one tenant.

Each call runs in its own transaction. By default it goes through the
privileged boundary inside ``tenant_scope``; operations listed in
``Settings.direct_query_operations`` go through the direct-query
repository instead. The choice is static: a failure on either path is
raised, never retried on the other.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.config import DATA_ACCESS_OPERATIONS, Settings, get_settings
from tenantguard.db.session import (
    get_privileged_session_factory,
    get_session_factory,
    privileged_session,
    tenant_scope,
)
from tenantguard.exceptions import InvalidInputError
from tenantguard.models import Member, MemberRole, Tenant
from tenantguard.repositories import member_repo, tenant_repo
from tenantguard.services.privileged import PrivilegedBoundary
from tenantguard.services.scoping import TenantScope


class MemberService:
    """Tenant-scoped member and profile operations."""

    def __init__(
        self,
        scope: TenantScope,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        privileged_session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.scope = scope
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._privileged_session_factory = privileged_session_factory

    def _direct(self, operation: str) -> bool:
        return self.settings.uses_direct_query(operation)

    @property
    def uses_privileged_path(self) -> bool:
        """Whether any operation still goes through the privileged functions."""
        return not DATA_ACCESS_OPERATIONS.issubset(self.settings.direct_query_operations)

    def _scope(self):
        return tenant_scope(
            self.scope.tenant_id,
            self._session_factory or get_session_factory(),
        )

    def _privileged(self):
        return privileged_session(
            self._privileged_session_factory or get_privileged_session_factory()
        )

    async def context(self) -> str | None:
        """Tenant id the database sees for this scope."""
        async with self._scope() as session:
            return await PrivilegedBoundary(session).get_context()

    async def list_members(self) -> list[Member]:
        if self._direct("list_members"):
            async with self._privileged() as db:
                return await member_repo.list_members(db, self.scope)
        async with self._scope() as session:
            return await PrivilegedBoundary(session).list_members()

    async def get_profile(self) -> Tenant | None:
        if self._direct("get_profile"):
            async with self._privileged() as db:
                return await tenant_repo.get_tenant_profile(db, self.scope)
        async with self._scope() as session:
            return await PrivilegedBoundary(session).get_profile()

    async def create_member(
        self,
        *,
        member_id: str,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | MemberRole = MemberRole.USER,
    ) -> Member:
        """Create a member in this service's tenant and return it."""
        if self._direct("create_member"):
            async with self._privileged() as db:
                member = await member_repo.create_member(
                    db,
                    self.scope,
                    member_id=member_id,
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    role=role,
                )
            logger.info("Member created", member_id=member.id, path="direct")
            return member

        async with self._scope() as session:
            return await PrivilegedBoundary(session).create_member(
                member_id, email, first_name, last_name, role
            )

    async def update_member(
        self,
        member_id: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | MemberRole | None = None,
    ) -> Member:
        if self._direct("update_member"):
            async with self._privileged() as db:
                member = await member_repo.update_member(
                    db,
                    self.scope,
                    member_id,
                    first_name=first_name,
                    last_name=last_name,
                    role=role,
                )
            logger.info("Member updated", member_id=member.id, path="direct")
            return member

        async with self._scope() as session:
            return await PrivilegedBoundary(session).update_member(
                member_id,
                first_name=first_name,
                last_name=last_name,
                role=role,
            )

    async def remove_member(self, member_id: str, acting_member_id: str | None = None) -> None:
        """Remove a member; nobody removes themselves."""
        if acting_member_id is not None and acting_member_id == member_id:
            raise InvalidInputError("Members cannot remove themselves")

        if self._direct("remove_member"):
            async with self._privileged() as db:
                await member_repo.remove_member(db, self.scope, member_id)
            logger.info("Member removed", member_id=member_id, path="direct")
            return

        async with self._scope() as session:
            await PrivilegedBoundary(session).remove_member(member_id)
