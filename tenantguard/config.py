import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
CONTEXT_KEY_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*\.[a-z_][a-z0-9_]*$")

DATA_ACCESS_OPERATIONS = frozenset(
    {
        "list_members",
        "get_profile",
        "create_member",
        "update_member",
        "remove_member",
    }
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TENANTGUARD_",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: SecretStr = Field(
        ...,
        description="PostgreSQL connection string for the application role (subject to row policies)",
    )
    privileged_database_url: SecretStr = Field(
        ...,
        description="PostgreSQL connection string for the owner role (resolver and direct-query path)",
    )
    app_db_role: str = Field(
        default="tenantguard_app",
        description="Database role granted EXECUTE on the privileged functions",
    )

    # Tenancy
    root_domain: str = Field(
        default="localhost",
        description="Root domain stripped when resolving a tenant from the Host header",
    )
    tenant_context_key: str = Field(
        default="app.current_tenant_id",
        description="Session configuration key holding the current tenant id",
    )
    direct_query_operations: list[str] = Field(
        default_factory=list,
        description="Operations served by the direct-query path instead of the privileged functions",
    )
    onboarding_url: str = Field(
        default="/onboarding",
        description="Redirect target for requests that resolve to no active tenant",
    )

    # Monitoring
    sentry_dsn: SecretStr | None = Field(
        default=None,
        description="Sentry DSN for error tracking (optional)",
    )

    # Environment
    environment: Literal["local", "staging", "production"] = Field(
        default="local",
        description="Deployment environment",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # DB pool tuning
    db_pool_size: int = Field(default=10, description="Async DB connection pool size")
    db_max_overflow: int = Field(default=20, description="Async DB pool overflow")
    db_pool_timeout: int = Field(default=30, description="Async DB pool timeout in seconds")
    db_pool_recycle: int = Field(default=1800, description="Async DB pool recycle time in seconds")

    # API Configuration
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API v1 route prefix",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid option."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("tenant_context_key")
    @classmethod
    def validate_tenant_context_key(cls, v: str) -> str:
        """Custom PostgreSQL settings must be namespaced (``prefix.name``)."""
        if not CONTEXT_KEY_PATTERN.match(v):
            raise ValueError("tenant_context_key must be namespaced, e.g. 'app.current_tenant_id'")
        return v

    @field_validator("app_db_role")
    @classmethod
    def validate_app_db_role(cls, v: str) -> str:
        """Role name is interpolated into GRANT statements, so keep it a plain identifier."""
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError("app_db_role must be a lowercase SQL identifier")
        return v

    @field_validator("direct_query_operations")
    @classmethod
    def validate_direct_query_operations(cls, v: list[str]) -> list[str]:
        unknown = set(v) - DATA_ACCESS_OPERATIONS
        if unknown:
            raise ValueError(
                f"direct_query_operations contains unknown operations: {sorted(unknown)}"
            )
        return v

    @field_validator("root_domain")
    @classmethod
    def validate_root_domain(cls, v: str) -> str:
        """Root domain is a bare hostname: no scheme, no port."""
        v = v.strip().lower().rstrip(".")
        if not v or "://" in v or ":" in v or "/" in v:
            raise ValueError("root_domain must be a bare hostname such as 'example.com'")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.environment == "local"

    def uses_direct_query(self, operation: str) -> bool:
        """Whether ``operation`` is routed to the direct-query path."""
        return operation in self.direct_query_operations


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the application lifetime.
    """
    return Settings()

