#!/usr/bin/env python3
"""
Seed two demo tenants with one member each for development.

Runs as the owner role, so it bypasses the row policies.

Usage:
    python scripts/seed_demo.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy.exc import IntegrityError

from tenantguard.db.session import dispose_engines, privileged_session
from tenantguard.models import Member, MemberRole, Tenant

DEMO_TENANTS = [
    ("Acme Agency", "acme", "admin@acme.test"),
    ("Beta Agency", "beta", "admin@beta.test"),
]


async def seed_demo() -> None:
    """Create the demo tenants and their first admin."""
    try:
        async with privileged_session() as db:
            for name, slug, email in DEMO_TENANTS:
                tenant = Tenant(name=name, slug=slug)
                db.add(tenant)
                await db.flush()
                db.add(
                    Member(
                        id=f"demo-{slug}-admin",
                        tenant_id=tenant.id,
                        email=email,
                        role=MemberRole.ADMIN,
                    )
                )
                print(f"✓ Created tenant: {slug} (ID: {tenant.id})")
        print("\nDemo data seeded. Try http://acme.localhost:8000/api/v1/members")
    except IntegrityError:
        logger.warning("Demo tenants already exist")
        print("✗ Demo tenants already exist, nothing to do")
    finally:
        await dispose_engines()


if __name__ == "__main__":
    asyncio.run(seed_demo())
