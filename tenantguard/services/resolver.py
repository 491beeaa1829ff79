"""Request-to-tenant resolution.

Resolution order: explicit tenant id, explicit tenant slug, subdomain of
the root domain, custom domain. Only active tenants resolve; an inactive
tenant produces the same ``None`` as an unknown one.
"""

import ipaddress
import uuid
from dataclasses import dataclass
from typing import Literal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from tenantguard.models import Tenant
from tenantguard.models.tenant import RESERVED_SLUGS, SLUG_PATTERN
from tenantguard.repositories import tenant_repo

ResolutionSource = Literal["tenant_id", "tenant_slug", "subdomain", "domain"]


@dataclass(frozen=True)
class ResolvedTenant:
    tenant: Tenant
    source: ResolutionSource

    @property
    def tenant_id(self) -> uuid.UUID:
        return self.tenant.id


def strip_port(host: str) -> str:
    """Lowercased hostname without port or trailing dot."""
    host = host.strip().lower()
    if host.startswith("["):
        # [::1]:8000
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class TenantResolver:
    """Resolve the tenant a request targets."""

    def __init__(self, root_domain: str) -> None:
        self.root_domain = root_domain.strip().lower().rstrip(".")

    def extract_subdomain(self, host: str | None) -> str | None:
        """
        Candidate slug from a Host header, or None.

        ``acme.example.com`` → ``acme``; the bare root, ``www``, IP literals
        and hosts outside the root domain yield None.
        """
        if not host:
            return None
        hostname = strip_port(host)
        if not hostname or is_ip_literal(hostname):
            return None
        if hostname in (self.root_domain, "localhost"):
            return None

        # <slug>.localhost works in development whatever the root domain is.
        suffixes = (f".{self.root_domain}", ".localhost")
        if not hostname.endswith(suffixes):
            return None

        label = hostname.split(".", 1)[0]
        if label in RESERVED_SLUGS:
            return None
        return label

    def custom_domain(self, host: str | None) -> str | None:
        """Hostname eligible for custom-domain lookup, or None."""
        if not host:
            return None
        hostname = strip_port(host)
        if not hostname or is_ip_literal(hostname) or "." not in hostname:
            return None
        if hostname == self.root_domain or hostname.endswith(f".{self.root_domain}"):
            return None
        if hostname == "localhost" or hostname.endswith(".localhost"):
            return None
        return hostname

    async def resolve(
        self,
        db: AsyncSession,
        *,
        host: str | None = None,
        tenant_slug: str | None = None,
        tenant_id: str | uuid.UUID | None = None,
    ) -> ResolvedTenant | None:
        """
        Resolve the active tenant for a request.

        Args:
            db: Owner-role session (no tenant context exists yet)
            host: Host header, port allowed
            tenant_slug: Explicit slug for callers without host routing
            tenant_id: Explicit tenant id for callers without host routing

        Returns:
            ResolvedTenant, or None when nothing active matches
        """
        if tenant_id:
            parsed = _parse_uuid(tenant_id)
            tenant = await tenant_repo.get_active_tenant_by_id(db, parsed) if parsed else None
            return self._result(tenant, "tenant_id", str(tenant_id))

        if tenant_slug:
            slug = tenant_slug.strip().lower()
            tenant = await self._by_slug(db, slug)
            return self._result(tenant, "tenant_slug", slug)

        subdomain = self.extract_subdomain(host)
        if subdomain:
            tenant = await self._by_slug(db, subdomain)
            return self._result(tenant, "subdomain", subdomain)

        domain = self.custom_domain(host)
        if domain:
            tenant = await tenant_repo.get_active_tenant_by_domain(db, domain)
            return self._result(tenant, "domain", domain)

        logger.debug("Request carries no tenant reference", host=host)
        return None

    @staticmethod
    async def _by_slug(db: AsyncSession, slug: str) -> Tenant | None:
        if not SLUG_PATTERN.match(slug) or slug in RESERVED_SLUGS:
            return None
        return await tenant_repo.get_active_tenant_by_slug(db, slug)

    @staticmethod
    def _result(
        tenant: Tenant | None, source: ResolutionSource, lookup: str
    ) -> ResolvedTenant | None:
        if tenant is None:
            logger.info("No active tenant matched", source=source, lookup=lookup)
            return None
        logger.debug("Tenant resolved", source=source, tenant_id=str(tenant.id))
        return ResolvedTenant(tenant=tenant, source=source)


def _parse_uuid(value: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None
