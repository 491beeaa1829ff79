"""Tests for configuration module."""

import pytest
from pydantic import SecretStr, ValidationError

from tenantguard.config import DATA_ACCESS_OPERATIONS, Settings

APP_URL = SecretStr("postgresql://tenantguard_app@localhost/tenantguard")
OWNER_URL = SecretStr("postgresql://tenantguard@localhost/tenantguard")


def _settings(**overrides) -> Settings:
    return Settings(
        _env_file=None,
        database_url=APP_URL,
        privileged_database_url=OWNER_URL,
        **overrides,
    )


def test_settings_validation(monkeypatch):
    """Both database URLs are required."""
    monkeypatch.delenv("TENANTGUARD_DATABASE_URL", raising=False)
    monkeypatch.delenv("TENANTGUARD_PRIVILEGED_DATABASE_URL", raising=False)

    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)

    required_fields = {error["loc"][0] for error in exc_info.value.errors()}
    assert "database_url" in required_fields
    assert "privileged_database_url" in required_fields


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("TENANTGUARD_ROOT_DOMAIN", raising=False)
    settings = _settings()

    assert settings.tenant_context_key == "app.current_tenant_id"
    assert settings.app_db_role == "tenantguard_app"
    assert settings.root_domain == "localhost"
    assert settings.direct_query_operations == []
    assert settings.onboarding_url == "/onboarding"
    assert settings.environment == "local"


def test_settings_log_level_case_insensitive():
    assert _settings(log_level="debug").log_level == "DEBUG"


def test_settings_log_level_validation():
    with pytest.raises(ValidationError) as exc_info:
        _settings(log_level="INVALID")
    assert "log_level" in str(exc_info.value)


def test_settings_environment_validation():
    with pytest.raises(ValidationError):
        _settings(environment="invalid")


@pytest.mark.parametrize("key", ["current_tenant_id", "app.tenant-id", "app.x; DROP TABLE"])
def test_tenant_context_key_must_be_namespaced_identifier(key):
    with pytest.raises(ValidationError):
        _settings(tenant_context_key=key)


def test_app_db_role_must_be_identifier():
    with pytest.raises(ValidationError):
        _settings(app_db_role="app role")


def test_direct_query_operations_reject_unknown():
    with pytest.raises(ValidationError) as exc_info:
        _settings(direct_query_operations=["list_members", "drop_everything"])
    assert "drop_everything" in str(exc_info.value)


def test_direct_query_operations_routing():
    settings = _settings(direct_query_operations=["list_members"])

    assert settings.uses_direct_query("list_members") is True
    assert settings.uses_direct_query("create_member") is False


def test_all_data_operations_can_be_direct():
    settings = _settings(direct_query_operations=sorted(DATA_ACCESS_OPERATIONS))
    assert all(settings.uses_direct_query(op) for op in DATA_ACCESS_OPERATIONS)


@pytest.mark.parametrize("value", ["https://example.com", "example.com:8000", "example.com/x", ""])
def test_root_domain_must_be_bare_hostname(value):
    with pytest.raises(ValidationError):
        _settings(root_domain=value)


def test_root_domain_normalized():
    assert _settings(root_domain=" Example.COM. ").root_domain == "example.com"


def test_settings_is_production():
    assert _settings(environment="production").is_production is True
    assert _settings(environment="local").is_production is False


def test_settings_is_local():
    assert _settings(environment="local").is_local is True
    assert _settings(environment="staging").is_local is False
