"""Member model and role hierarchy."""

from __future__ import annotations

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantguard.db.base import Base, TimestampMixin
from tenantguard.exceptions import InvalidInputError

if TYPE_CHECKING:
    from tenantguard.models.tenant import Tenant


class MemberRole(str, enum.Enum):
    """Closed set of member roles, lowest privilege first."""

    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPER_USER = "SUPER_USER"
    SUPER_ADMIN = "SUPER_ADMIN"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]

    def at_least(self, other: MemberRole) -> bool:
        return self.level >= other.level

    @classmethod
    def parse(cls, value: str | MemberRole) -> MemberRole:
        """Validate ``value`` against the closed role set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(
                f"Invalid member role: {value!r}",
                details={"allowed": [role.value for role in cls]},
            ) from None


_ROLE_LEVELS = {role: level for level, role in enumerate(MemberRole)}


class Member(Base, TimestampMixin):
    """
    A principal belonging to exactly one tenant.

    The id is the external identity provider's key. Email is unique within
    a tenant, not globally. ``tenant_id`` is fixed for the life of the row.
    """

    __tablename__ = "members"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_members_tenant_id_email"),)

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    role: Mapped[MemberRole] = mapped_column(
        Enum(
            MemberRole,
            name="member_role",
            native_enum=False,
            create_constraint=True,
            validate_strings=True,
            length=32,
        ),
        nullable=False,
        default=MemberRole.USER,
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(
        "Tenant",
        back_populates="members",
    )

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, tenant_id={self.tenant_id}, role={self.role.value})>"
