"""Explicit tenant scope passed to every data-access call."""

import uuid
from dataclasses import dataclass

from tenantguard.db.rls import normalize_tenant_id


@dataclass(frozen=True)
class TenantScope:
    """Scope envelope naming the one tenant a data-access call may touch."""

    tenant_id: uuid.UUID

    def __post_init__(self) -> None:
        if not isinstance(self.tenant_id, uuid.UUID):
            object.__setattr__(self, "tenant_id", uuid.UUID(normalize_tenant_id(self.tenant_id)))

    @classmethod
    def of(cls, tenant: object) -> "TenantScope":
        """Build a scope from anything carrying a ``tenant_id`` or ``id``."""
        tenant_id = getattr(tenant, "tenant_id", None) or getattr(tenant, "id")
        return cls(tenant_id=tenant_id)

    def __str__(self) -> str:
        return str(self.tenant_id)
