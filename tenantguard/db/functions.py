"""Server-side privileged functions.

The data functions run as ``SECURITY DEFINER`` so the owner's rights let
them work past the row policies on ``tenants`` and ``members``. Each one
reads the tenant id from the session configuration key, refuses to run
when it is empty, and touches rows of that tenant only. EXECUTE is
granted to the application role and revoked from PUBLIC.

The context functions (set/get/clear) touch no tables and run with the
caller's rights.
"""

from __future__ import annotations

from dataclasses import dataclass

from tenantguard.config import CONTEXT_KEY_PATTERN, IDENTIFIER_PATTERN
from tenantguard.error_codes import (
    SQLSTATE_INVALID_INPUT,
    SQLSTATE_NOT_FOUND,
    SQLSTATE_TENANT_CONTEXT_NOT_SET,
)
from tenantguard.models.member import MemberRole

CONTEXT_NOT_SET_MESSAGE = "tenant context not set - call set_current_tenant_id first"


@dataclass(frozen=True)
class PrivilegedFunction:
    name: str
    signature: str
    security_definer: bool
    body: str

    @property
    def qualified(self) -> str:
        return f"{self.name}({self.signature})"


def _check_key(context_key: str) -> str:
    if not CONTEXT_KEY_PATTERN.match(context_key):
        raise ValueError(f"Invalid tenant context key: {context_key!r}")
    return context_key


def _check_role(app_role: str) -> str:
    if not IDENTIFIER_PATTERN.match(app_role):
        raise ValueError(f"Invalid database role name: {app_role!r}")
    return app_role


def _role_list() -> str:
    return ", ".join(f"'{role.value}'" for role in MemberRole)


def privileged_functions(context_key: str) -> list[PrivilegedFunction]:
    """Definitions of every function in the privileged boundary."""
    key = _check_key(context_key)
    roles = _role_list()

    require_tenant = f"""
    current_tenant := NULLIF(btrim(current_setting('{key}', true)), '');
    IF current_tenant IS NULL THEN
        RAISE EXCEPTION '{CONTEXT_NOT_SET_MESSAGE}'
            USING ERRCODE = '{SQLSTATE_TENANT_CONTEXT_NOT_SET}';
    END IF;"""

    return [
        PrivilegedFunction(
            name="set_current_tenant_id",
            signature="text",
            security_definer=False,
            body=f"""
CREATE OR REPLACE FUNCTION set_current_tenant_id(tenant_id text)
RETURNS void
LANGUAGE plpgsql
AS $$
BEGIN
    IF tenant_id IS NULL OR btrim(tenant_id) = '' THEN
        RAISE EXCEPTION 'tenant id must not be blank'
            USING ERRCODE = '{SQLSTATE_INVALID_INPUT}';
    END IF;
    -- Rejects anything that is not a tenant id before it reaches the key.
    PERFORM tenant_id::uuid;
    PERFORM set_config('{key}', tenant_id, true);
END;
$$""",
        ),
        PrivilegedFunction(
            name="get_current_tenant_id",
            signature="",
            security_definer=False,
            body=f"""
CREATE OR REPLACE FUNCTION get_current_tenant_id()
RETURNS text
LANGUAGE sql
STABLE
AS $$
    SELECT NULLIF(btrim(current_setting('{key}', true)), '')
$$""",
        ),
        PrivilegedFunction(
            name="clear_current_tenant_id",
            signature="",
            security_definer=False,
            body=f"""
CREATE OR REPLACE FUNCTION clear_current_tenant_id()
RETURNS void
LANGUAGE plpgsql
AS $$
BEGIN
    PERFORM set_config('{key}', '', true);
END;
$$""",
        ),
        PrivilegedFunction(
            name="get_tenant_members",
            signature="",
            security_definer=True,
            body=f"""
CREATE OR REPLACE FUNCTION get_tenant_members()
RETURNS SETOF members
LANGUAGE plpgsql
STABLE
SECURITY DEFINER
SET search_path = public, pg_temp
AS $$
DECLARE
    current_tenant text;
BEGIN{require_tenant}

    RETURN QUERY
    SELECT m.*
    FROM members m
    WHERE m.tenant_id = current_tenant::uuid
    ORDER BY m.created_at, m.id;
END;
$$""",
        ),
        PrivilegedFunction(
            name="get_current_tenant",
            signature="",
            security_definer=True,
            body=f"""
CREATE OR REPLACE FUNCTION get_current_tenant()
RETURNS SETOF tenants
LANGUAGE plpgsql
STABLE
SECURITY DEFINER
SET search_path = public, pg_temp
AS $$
DECLARE
    current_tenant text;
BEGIN{require_tenant}

    RETURN QUERY
    SELECT t.*
    FROM tenants t
    WHERE t.id = current_tenant::uuid
      AND t.is_active;
END;
$$""",
        ),
        PrivilegedFunction(
            name="create_tenant_member",
            signature="text, text, text, text, text",
            security_definer=True,
            body=f"""
CREATE OR REPLACE FUNCTION create_tenant_member(
    member_id text,
    member_email text,
    member_first_name text,
    member_last_name text,
    member_role text
)
RETURNS SETOF members
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public, pg_temp
AS $$
DECLARE
    current_tenant text;
    created members;
BEGIN{require_tenant}

    IF member_role IS NULL OR member_role NOT IN ({roles}) THEN
        RAISE EXCEPTION 'Invalid member role: %', member_role
            USING ERRCODE = '{SQLSTATE_INVALID_INPUT}';
    END IF;

    IF member_id IS NULL OR btrim(member_id) = ''
       OR member_email IS NULL OR btrim(member_email) = '' THEN
        RAISE EXCEPTION 'member id and email are required'
            USING ERRCODE = '{SQLSTATE_INVALID_INPUT}';
    END IF;

    INSERT INTO members (
        id, tenant_id, email, first_name, last_name, role, created_at, updated_at
    ) VALUES (
        member_id,
        current_tenant::uuid,
        lower(btrim(member_email)),
        member_first_name,
        member_last_name,
        member_role,
        now(),
        now()
    )
    RETURNING * INTO created;

    RETURN NEXT created;
END;
$$""",
        ),
        PrivilegedFunction(
            name="update_tenant_member",
            signature="text, text, text, text",
            security_definer=True,
            body=f"""
CREATE OR REPLACE FUNCTION update_tenant_member(
    member_id text,
    member_first_name text,
    member_last_name text,
    member_role text
)
RETURNS SETOF members
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public, pg_temp
AS $$
DECLARE
    current_tenant text;
    updated members;
BEGIN{require_tenant}

    IF member_role IS NOT NULL AND member_role NOT IN ({roles}) THEN
        RAISE EXCEPTION 'Invalid member role: %', member_role
            USING ERRCODE = '{SQLSTATE_INVALID_INPUT}';
    END IF;

    UPDATE members m
    SET first_name = COALESCE(member_first_name, m.first_name),
        last_name = COALESCE(member_last_name, m.last_name),
        role = COALESCE(member_role, m.role),
        updated_at = now()
    WHERE m.id = member_id
      AND m.tenant_id = current_tenant::uuid
    RETURNING m.* INTO updated;

    IF NOT FOUND THEN
        RAISE EXCEPTION 'member not found: %', member_id
            USING ERRCODE = '{SQLSTATE_NOT_FOUND}';
    END IF;

    RETURN NEXT updated;
END;
$$""",
        ),
        PrivilegedFunction(
            name="remove_tenant_member",
            signature="text",
            security_definer=True,
            body=f"""
CREATE OR REPLACE FUNCTION remove_tenant_member(member_id text)
RETURNS void
LANGUAGE plpgsql
SECURITY DEFINER
SET search_path = public, pg_temp
AS $$
DECLARE
    current_tenant text;
    removed integer;
BEGIN{require_tenant}

    DELETE FROM members m
    WHERE m.id = member_id
      AND m.tenant_id = current_tenant::uuid;

    GET DIAGNOSTICS removed = ROW_COUNT;
    IF removed = 0 THEN
        RAISE EXCEPTION 'member not found: %', member_id
            USING ERRCODE = '{SQLSTATE_NOT_FOUND}';
    END IF;
END;
$$""",
        ),
    ]


def install_statements(context_key: str, app_role: str) -> list[str]:
    """CREATE, REVOKE and GRANT statements for the whole boundary."""
    role = _check_role(app_role)
    statements: list[str] = []
    for fn in privileged_functions(context_key):
        statements.append(fn.body.strip())
        statements.append(f"REVOKE ALL ON FUNCTION {fn.qualified} FROM PUBLIC")
        statements.append(f"GRANT EXECUTE ON FUNCTION {fn.qualified} TO {role}")
    return statements


def drop_statements(context_key: str) -> list[str]:
    return [
        f"DROP FUNCTION IF EXISTS {fn.qualified}"
        for fn in reversed(privileged_functions(context_key))
    ]
