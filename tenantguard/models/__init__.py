"""Database models."""

from tenantguard.models.member import Member, MemberRole
from tenantguard.models.tenant import Tenant

__all__ = [
    "Member",
    "MemberRole",
    "Tenant",
]
