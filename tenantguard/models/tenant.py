"""Tenant (agency) model."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tenantguard.db.base import Base, JSONType, TimestampMixin, UUIDMixin
from tenantguard.exceptions import InvalidInputError

if TYPE_CHECKING:
    from tenantguard.models.member import Member

SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
RESERVED_SLUGS = frozenset({"www"})


def validate_slug(slug: str) -> str:
    """Return ``slug`` if it is a URL-safe, non-reserved subdomain label."""
    if not isinstance(slug, str) or not SLUG_PATTERN.match(slug):
        raise InvalidInputError(f"Invalid tenant slug: {slug!r}")
    if slug in RESERVED_SLUGS:
        raise InvalidInputError(f"Tenant slug is reserved: {slug!r}")
    return slug


class Tenant(Base, UUIDMixin, TimestampMixin):
    """
    Tenant model for multi-tenancy.

    Every member row is scoped to exactly one tenant. Tenants are
    deactivated rather than deleted; an inactive tenant is invisible to
    request resolution.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(63), nullable=False, unique=True, index=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # Relationships
    members: Mapped[list[Member]] = relationship(
        "Member",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    @validates("slug")
    def _validate_slug(self, _key: str, slug: str) -> str:
        # Routing depends on the slug, so it never changes once assigned.
        current = self.__dict__.get("slug")
        if current is not None and current != slug:
            raise InvalidInputError("Tenant slug is immutable once assigned")
        return validate_slug(slug)

    @validates("domain")
    def _normalize_domain(self, _key: str, domain: str | None) -> str | None:
        if domain is None:
            return None
        return domain.strip().lower().rstrip(".") or None

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, active={self.is_active})>"
