"""Tests for request context resolution dependencies."""

import uuid
from types import SimpleNamespace

import pytest

from tenantguard.exceptions import TenantResolutionError
from tenantguard.middleware.context import (
    RequestContext,
    get_current_context,
    get_request_context,
    require_tenant,
    set_current_context,
)
from tenantguard.services.resolver import TenantResolver


def _request(host: str | None):
    headers = {"host": host} if host else {}
    return SimpleNamespace(headers=headers, state=SimpleNamespace(request_id="req-1"))


def test_context_roundtrip_in_contextvar():
    context = RequestContext(
        request_id="req-1",
        tenant_id=uuid.uuid4(),
        tenant_slug="acme",
        source="subdomain",
    )
    set_current_context(context)
    assert get_current_context() is context

    set_current_context(None)
    assert get_current_context() is None


def test_log_fields():
    tenant_id = uuid.uuid4()
    context = RequestContext("req-1", tenant_id, "acme", "subdomain")
    assert context.log_fields() == {"tenant_id": str(tenant_id), "tenant_slug": "acme"}


@pytest.mark.asyncio
async def test_get_request_context_resolves_subdomain(session_factory, tenants):
    request = _request("acme.example.com")

    resolver = TenantResolver("example.com")

    context = await get_request_context(request, session_factory, resolver)

    assert context.tenant_id == tenants["acme"].id
    assert context.tenant_slug == "acme"
    assert context.request_id == "req-1"
    assert request.state.tenant_context is context
    assert get_current_context() is context


@pytest.mark.asyncio
async def test_header_slug_used_when_query_absent(session_factory, tenants):
    context = await get_request_context(
        _request("acme.example.com"),
        session_factory,
        TenantResolver("example.com"),
        x_tenant_slug="beta",
    )
    assert context.tenant_slug == "beta"
    assert context.source == "tenant_slug"


@pytest.mark.asyncio
async def test_previous_context_never_leaks(session_factory, tenants):
    resolver = TenantResolver("example.com")
    await get_request_context(_request("acme.example.com"), session_factory, resolver)

    context = await get_request_context(_request("example.com"), session_factory, resolver)

    assert context is None
    assert get_current_context() is None


@pytest.mark.asyncio
async def test_require_tenant_raises_without_context():
    with pytest.raises(TenantResolutionError):
        await require_tenant(None)


@pytest.mark.asyncio
async def test_require_tenant_passes_context_through():
    context = RequestContext("req-1", uuid.uuid4(), "acme", "subdomain")
    assert await require_tenant(context) is context
