"""Add privileged tenant functions

Revision ID: 002
Revises: 001
Create Date: 2026-10-17 13:00:00.000000

"""

from alembic import op

from tenantguard.config import get_settings
from tenantguard.db.functions import drop_statements, install_statements

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create the privileged function boundary.

    The data functions are SECURITY DEFINER and owned by the migrating
    role, so they read and write tenant rows past the row policies added
    in 003. EXECUTE goes to the application role only.
    """
    settings = get_settings()
    for statement in install_statements(settings.tenant_context_key, settings.app_db_role):
        op.execute(statement)


def downgrade() -> None:
    """Drop every privileged function."""
    settings = get_settings()
    for statement in drop_statements(settings.tenant_context_key):
        op.execute(statement)
