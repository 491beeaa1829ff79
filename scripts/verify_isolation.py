#!/usr/bin/env python3
"""
Check that row security, policies and privileged functions are installed.

Exits non-zero when anything is missing, so it can gate a deploy.

Usage:
    python scripts/verify_isolation.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tenantguard.config import get_settings
from tenantguard.db.rls import verify_isolation
from tenantguard.db.session import dispose_engines, privileged_session
from tenantguard.exceptions import IsolationConfigurationError


async def main() -> int:
    settings = get_settings()
    try:
        async with privileged_session() as db:
            report = await verify_isolation(db, settings.tenant_context_key)
    finally:
        await dispose_engines()

    try:
        report.raise_for_problems()
    except IsolationConfigurationError as exc:
        for problem in exc.details["problems"]:
            print(f"✗ {problem}")
        return 1

    print("✓ Tenant isolation verified")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
