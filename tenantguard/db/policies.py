"""Row-level security policies on the tenant-scoped tables.

The policies are a backstop behind the privileged functions: a query that
reaches ``tenants`` or ``members`` directly as the application role only
sees and writes rows whose tenant id equals the session value. With no
value set nothing is visible. The owner role (and so every SECURITY
DEFINER function it owns) is exempt because row security is enabled but
not forced.
"""

from __future__ import annotations

from dataclasses import dataclass

from tenantguard.config import CONTEXT_KEY_PATTERN, IDENTIFIER_PATTERN
from tenantguard.error_codes import SQLSTATE_INVALID_INPUT


@dataclass(frozen=True)
class RowPolicy:
    table: str
    name: str
    tenant_column: str
    grants: tuple[str, ...]


TENANT_POLICIES: tuple[RowPolicy, ...] = (
    RowPolicy(
        table="tenants",
        name="tenants_tenant_isolation",
        tenant_column="id",
        grants=("SELECT",),
    ),
    RowPolicy(
        table="members",
        name="members_tenant_isolation",
        tenant_column="tenant_id",
        grants=("SELECT", "INSERT", "UPDATE", "DELETE"),
    ),
)

TENANT_SCOPED_TABLES = tuple(policy.table for policy in TENANT_POLICIES)


def session_tenant_expression(context_key: str) -> str:
    """SQL expression for the session tenant id, NULL when unset or blank."""
    if not CONTEXT_KEY_PATTERN.match(context_key):
        raise ValueError(f"Invalid tenant context key: {context_key!r}")
    return f"NULLIF(btrim(current_setting('{context_key}', true)), '')::uuid"


def policy_statements(context_key: str, app_role: str) -> list[str]:
    """ENABLE, REVOKE, CREATE POLICY and GRANT statements for every table."""
    if not IDENTIFIER_PATTERN.match(app_role):
        raise ValueError(f"Invalid database role name: {app_role!r}")
    current = session_tenant_expression(context_key)

    statements: list[str] = []
    for policy in TENANT_POLICIES:
        statements.extend(
            [
                f"ALTER TABLE {policy.table} ENABLE ROW LEVEL SECURITY",
                f"REVOKE ALL ON TABLE {policy.table} FROM PUBLIC",
                f"DROP POLICY IF EXISTS {policy.name} ON {policy.table}",
                f"""CREATE POLICY {policy.name} ON {policy.table}
    FOR ALL
    USING ({policy.tenant_column} = {current})
    WITH CHECK ({policy.tenant_column} = {current})""",
                f"GRANT {', '.join(policy.grants)} ON TABLE {policy.table} TO {app_role}",
            ]
        )
    return statements


def drop_policy_statements(app_role: str) -> list[str]:
    if not IDENTIFIER_PATTERN.match(app_role):
        raise ValueError(f"Invalid database role name: {app_role!r}")
    statements: list[str] = []
    for policy in reversed(TENANT_POLICIES):
        statements.extend(
            [
                f"REVOKE ALL ON TABLE {policy.table} FROM {app_role}",
                f"DROP POLICY IF EXISTS {policy.name} ON {policy.table}",
                f"ALTER TABLE {policy.table} DISABLE ROW LEVEL SECURITY",
            ]
        )
    return statements


SLUG_GUARD_STATEMENTS = (
    f"""CREATE OR REPLACE FUNCTION tenants_slug_immutable()
RETURNS trigger
LANGUAGE plpgsql
AS $$
BEGIN
    IF NEW.slug IS DISTINCT FROM OLD.slug THEN
        RAISE EXCEPTION 'tenant slug is immutable once assigned'
            USING ERRCODE = '{SQLSTATE_INVALID_INPUT}';
    END IF;
    RETURN NEW;
END;
$$""",
    "DROP TRIGGER IF EXISTS tenants_slug_immutable ON tenants",
    """CREATE TRIGGER tenants_slug_immutable
    BEFORE UPDATE OF slug ON tenants
    FOR EACH ROW EXECUTE FUNCTION tenants_slug_immutable()""",
)

DROP_SLUG_GUARD_STATEMENTS = (
    "DROP TRIGGER IF EXISTS tenants_slug_immutable ON tenants",
    "DROP FUNCTION IF EXISTS tenants_slug_immutable()",
)
