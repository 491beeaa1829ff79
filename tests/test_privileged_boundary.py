"""Unit tests for the privileged function client."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import DBAPIError

from tenantguard.exceptions import (
    ConflictError,
    InvalidInputError,
    MemberNotFoundError,
    TenantContextNotSetError,
)
from tenantguard.models import MemberRole
from tenantguard.services.privileged import PrivilegedBoundary, translate_boundary_errors


class _FakePgError(Exception):
    def __init__(self, sqlstate: str, message: str):
        super().__init__(message)
        self.sqlstate = sqlstate


def _db_error(sqlstate: str, message: str = "boom") -> DBAPIError:
    return DBAPIError("SELECT 1", {}, _FakePgError(sqlstate, message))


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar_one_or_none(self):
        return self._value

    def scalar_one(self):
        return self._value

    def scalars(self):
        return self

    def all(self):
        return self._value


class _FakeSession:
    def __init__(self, execute_result=None, error: Exception | None = None):
        self.execute_result = execute_result
        self.error = error
        self.calls = []
        self.queries = []

    async def execute(self, query, params=None):
        self.calls.append((str(query), params))
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.execute_result


def test_translate_context_not_set():
    with pytest.raises(TenantContextNotSetError) as exc_info:
        with translate_boundary_errors("list_members"):
            raise _db_error("TG001", "tenant context not set - call set_current_tenant_id first")

    assert exc_info.value.public_message == "Access denied"
    assert exc_info.value.details == {"operation": "list_members"}


def test_translate_invalid_input():
    with pytest.raises(InvalidInputError) as exc_info:
        with translate_boundary_errors("create_member"):
            raise _db_error("TG002", "Invalid member role: OWNER")

    assert "OWNER" in exc_info.value.message


def test_translate_not_found():
    with pytest.raises(MemberNotFoundError):
        with translate_boundary_errors("remove_member"):
            raise _db_error("TG003", "member not found: beta-admin")


def test_translate_unique_violation_to_conflict():
    with pytest.raises(ConflictError):
        with translate_boundary_errors("create_member"):
            raise _db_error("23505", "duplicate key")


def test_translate_passes_through_other_errors():
    with pytest.raises(DBAPIError):
        with translate_boundary_errors("list_members"):
            raise _db_error("40001", "could not serialize access")


@pytest.mark.asyncio
async def test_list_members_calls_function():
    db = _FakeSession(execute_result=_FakeResult([]))

    members = await PrivilegedBoundary(db).list_members()

    assert members == []
    assert "get_tenant_members()" in db.calls[0][0]


@pytest.mark.asyncio
async def test_list_members_without_context_is_denied():
    db = _FakeSession(error=_db_error("TG001"))

    with pytest.raises(TenantContextNotSetError):
        await PrivilegedBoundary(db).list_members()


@pytest.mark.asyncio
async def test_get_profile_calls_function():
    db = _FakeSession(execute_result=_FakeResult(None))

    assert await PrivilegedBoundary(db).get_profile() is None
    assert "get_current_tenant()" in db.calls[0][0]


@pytest.mark.asyncio
async def test_create_member_sends_no_tenant_id():
    row = SimpleNamespace(id="acme-user")
    db = _FakeSession(execute_result=_FakeResult(row))

    created = await PrivilegedBoundary(db).create_member(
        "acme-user", " User@Acme.test ", "Ada", None, "MANAGER"
    )

    params = db.queries[0].compile().params
    assert created is row
    assert "SELECT * FROM create_tenant_member(" in db.calls[0][0]
    assert params == {
        "member_id": "acme-user",
        "email": "user@acme.test",
        "first_name": "Ada",
        "last_name": None,
        "role": "MANAGER",
    }
    assert "tenant" not in " ".join(params)


@pytest.mark.asyncio
async def test_create_member_rejects_role_before_database():
    db = _FakeSession(execute_result=_FakeResult("x"))

    with pytest.raises(InvalidInputError):
        await PrivilegedBoundary(db).create_member("acme-owner", "o@acme.test", role="OWNER")

    assert db.calls == []


@pytest.mark.asyncio
async def test_update_member_foreign_id_not_found():
    db = _FakeSession(error=_db_error("TG003", "member not found: beta-admin"))

    with pytest.raises(MemberNotFoundError):
        await PrivilegedBoundary(db).update_member("beta-admin", role=MemberRole.USER)

    assert "update_tenant_member(" in db.calls[0][0]


@pytest.mark.asyncio
async def test_remove_member_calls_function():
    db = _FakeSession(execute_result=_FakeResult(None))

    await PrivilegedBoundary(db).remove_member("acme-admin")

    statement, params = db.calls[0]
    assert "remove_tenant_member(" in statement
    assert params == {"member_id": "acme-admin"}


BOUNDARY_CALLS = {
    "list_members": lambda boundary: boundary.list_members(),
    "get_profile": lambda boundary: boundary.get_profile(),
    "create_member": lambda boundary: boundary.create_member("acme-user", "user@acme.test"),
    "update_member": lambda boundary: boundary.update_member("acme-admin", first_name="Ada"),
    "remove_member": lambda boundary: boundary.remove_member("acme-admin"),
}


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", sorted(BOUNDARY_CALLS))
async def test_every_data_operation_denied_without_context(operation):
    db = _FakeSession(error=_db_error("TG001", "tenant context not set"))

    with pytest.raises(TenantContextNotSetError) as exc_info:
        await BOUNDARY_CALLS[operation](PrivilegedBoundary(db))

    assert exc_info.value.details == {"operation": operation}
    assert len(db.calls) == 1
