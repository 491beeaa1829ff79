"""Unit tests for session tenant context helpers."""

import uuid

import pytest
from sqlalchemy.exc import DBAPIError

from tenantguard.db.rls import (
    IsolationReport,
    clear_tenant_context,
    get_tenant_context,
    normalize_tenant_id,
    set_tenant_context,
    verify_isolation,
)
from tenantguard.exceptions import (
    InvalidInputError,
    IsolationConfigurationError,
    TenantContextError,
)


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar_one_or_none(self):
        return self._value

    def all(self):
        return self._value


class _FakeSession:
    def __init__(self, results=(), error: Exception | None = None):
        self.results = list(results)
        self.error = error
        self.calls = []

    async def execute(self, query, params=None):
        self.calls.append((str(query), params))
        if self.error is not None:
            raise self.error
        return _FakeResult(self.results.pop(0) if self.results else None)


def test_normalize_tenant_id_canonicalizes():
    tenant_id = uuid.uuid4()
    assert normalize_tenant_id(tenant_id) == str(tenant_id)
    assert normalize_tenant_id(f"  {str(tenant_id).upper()} ") == str(tenant_id)


@pytest.mark.parametrize("value", ["", "   ", "acme", None])
def test_normalize_tenant_id_rejects_blank_and_malformed(value):
    with pytest.raises(InvalidInputError):
        normalize_tenant_id(value)


@pytest.mark.asyncio
async def test_set_tenant_context_calls_setter():
    db = _FakeSession()
    tenant_id = uuid.uuid4()

    await set_tenant_context(db, tenant_id)

    statement, params = db.calls[0]
    assert "set_current_tenant_id(" in statement
    assert params == {"tenant_id": str(tenant_id)}


@pytest.mark.asyncio
async def test_set_tenant_context_blank_never_reaches_database():
    db = _FakeSession()

    with pytest.raises(InvalidInputError):
        await set_tenant_context(db, "  ")

    assert db.calls == []


@pytest.mark.asyncio
async def test_set_tenant_context_write_failure():
    db = _FakeSession(error=DBAPIError("SELECT", {}, Exception("permission denied")))

    with pytest.raises(TenantContextError) as exc_info:
        await set_tenant_context(db, uuid.uuid4())

    assert exc_info.value.public_message == "Access denied"


@pytest.mark.asyncio
async def test_get_tenant_context_returns_value():
    tenant_id = str(uuid.uuid4())
    db = _FakeSession(results=[tenant_id])

    assert await get_tenant_context(db) == tenant_id
    assert "get_current_tenant_id()" in db.calls[0][0]


@pytest.mark.asyncio
async def test_get_tenant_context_empty_is_none():
    assert await get_tenant_context(_FakeSession(results=[""])) is None
    assert await get_tenant_context(_FakeSession(results=[None])) is None


@pytest.mark.asyncio
async def test_clear_tenant_context():
    db = _FakeSession()
    await clear_tenant_context(db)
    assert "clear_current_tenant_id()" in db.calls[0][0]


@pytest.mark.asyncio
async def test_verify_isolation_complete():
    db = _FakeSession(
        results=[
            [("tenants", True), ("members", True)],
            [("tenants", "tenants_tenant_isolation"), ("members", "members_tenant_isolation")],
            [
                ("get_tenant_members", True),
                ("get_current_tenant", True),
                ("create_tenant_member", True),
                ("update_tenant_member", True),
                ("remove_tenant_member", True),
            ],
        ]
    )

    report = await verify_isolation(db, "app.current_tenant_id")

    assert report.ok
    assert report.problems == []


@pytest.mark.asyncio
async def test_verify_isolation_reports_gaps():
    db = _FakeSession(
        results=[
            [("tenants", True), ("members", False)],
            [("tenants", "tenants_tenant_isolation")],
            [("get_tenant_members", False)],
        ]
    )

    report = await verify_isolation(db, "app.current_tenant_id")

    assert not report.ok
    assert "row level security disabled on members" in report.problems
    assert "policy members_tenant_isolation missing on members" in report.problems
    assert "function get_tenant_members is not SECURITY DEFINER" in report.problems
    assert "function remove_tenant_member is not SECURITY DEFINER" in report.problems


def test_empty_report_is_not_ok():
    assert not IsolationReport().ok


def test_raise_for_problems():
    with pytest.raises(IsolationConfigurationError) as exc_info:
        IsolationReport().raise_for_problems()

    assert "row level security disabled on tenants" in exc_info.value.details["problems"]
