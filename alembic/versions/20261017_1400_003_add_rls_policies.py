"""Add Row-Level Security policies for tenant isolation

Revision ID: 003
Revises: 002
Create Date: 2026-10-17 14:00:00.000000

"""

from alembic import op

from tenantguard.config import get_settings
from tenantguard.db.policies import (
    DROP_SLUG_GUARD_STATEMENTS,
    SLUG_GUARD_STATEMENTS,
    drop_policy_statements,
    policy_statements,
)

# revision identifiers, used by Alembic.
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Enable Row-Level Security on the tenant-scoped tables.

    RLS is the database-level backstop: a direct query as the application
    role only sees rows of the tenant in the session context, and nothing
    at all when no context is set.
    """
    settings = get_settings()
    for statement in policy_statements(settings.tenant_context_key, settings.app_db_role):
        op.execute(statement)

    # Routing depends on the slug, so the database refuses to change it.
    for statement in SLUG_GUARD_STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    """Remove RLS policies, grants and the slug guard."""
    settings = get_settings()
    for statement in DROP_SLUG_GUARD_STATEMENTS:
        op.execute(statement)
    for statement in drop_policy_statements(settings.app_db_role):
        op.execute(statement)
