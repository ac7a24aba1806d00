"""Settings for the site API, grouped by concern.

Each group is a ``BaseSettings`` class with its own env prefix (``APP_``,
``AUTH_``, ``SUPABASE_``, ``EMAIL_``, ``LLM_``, ``DATAFORSEO_``, ``LOG_``).
``APP_ENV`` (development, testing, staging, production) picks the
``.env.{APP_ENV}`` file at the repository root, which is loaded into the
process environment when present.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILES = {name: f".env.{name}" for name in ("development", "testing", "staging", "production")}

_env_path = PROJECT_ROOT / ENV_FILES.get(APP_ENV, ENV_FILES["development"])

# Nested BaseSettings do not inherit env_file, so the file goes into os.environ first
if _env_path.is_file():
    from dotenv import load_dotenv

    load_dotenv(_env_path, override=True)


class RateLimitPolicySettings(BaseModel):
    """One entry of the rate-limit policy table."""

    window_seconds: int = Field(..., ge=1)
    max_requests: int = Field(..., ge=1)


DEFAULT_RATE_LIMIT_POLICIES: dict[str, RateLimitPolicySettings] = {
    # Strict limit for auth endpoints
    "auth": RateLimitPolicySettings(window_seconds=15 * 60, max_requests=5),
    "chat": RateLimitPolicySettings(window_seconds=60, max_requests=20),
    "api": RateLimitPolicySettings(window_seconds=60, max_requests=60),
    # Form submissions and other sensitive operations
    "sensitive": RateLimitPolicySettings(window_seconds=60 * 60, max_requests=10),
}


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    AI features are optional on this site: leaving ``LLM_API_KEY`` unset
    disables lead enrichment, content generation and chat replies.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (only 'openai' is supported)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model name (e.g., gpt-4o, gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for the provider; AI is disabled when unset",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    site_url: str = Field(
        "https://thearq.ai",
        description="Public site URL used in emails and SEO link checks",
    )
    trust_proxy_headers: bool = Field(
        False,
        description=(
            "Derive the client address from X-Forwarded-For / CF-Connecting-IP / "
            "X-Real-IP. Only enable behind a reverse proxy that overwrites them."
        ),
    )
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins for the browser front-end",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-endpoint rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60.0,
        description="Interval of the background sweep that evicts expired windows",
        gt=0,
    )
    rate_limit_policies: dict[str, RateLimitPolicySettings] = Field(
        default_factory=dict,
        description="JSON overrides merged over the default policy table",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    def resolved_rate_limit_policies(self) -> dict[str, RateLimitPolicySettings]:
        """Return the default policy table with configured overrides applied."""
        return {**DEFAULT_RATE_LIMIT_POLICIES, **self.rate_limit_policies}


class AuthSettings(BaseSettings):
    """Admin session configuration."""

    jwt_secret: str | None = Field(
        None,
        description="HMAC secret used to sign admin session tokens",
    )
    jwt_algorithm: str = Field("HS256")
    session_ttl_hours: int = Field(24, ge=1)
    cookie_name: str = Field("admin_session")
    admin_credentials: str | None = Field(
        None,
        description="Comma-separated 'username:bcrypt_hash' pairs",
    )
    protected_prefix: str = Field("/api/admin")
    public_paths: list[str] = Field(
        default_factory=lambda: ["/api/admin/login", "/api/admin/logout"],
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Supabase (PostgREST) connection settings."""

    url: str | None = None
    service_role_key: str | None = None
    timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.service_role_key)


class EmailSettings(BaseSettings):
    """Resend email delivery settings."""

    api_key: str | None = None
    api_url: str = "https://api.resend.com/emails"
    from_address: str = "ArqAI <no-reply@thearq.ai>"
    team_address: str = "hello@thearq.ai"
    timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        case_sensitive=False,
    )


class SEOSettings(BaseSettings):
    """DataForSEO keyword research settings."""

    login: str | None = None
    password: str | None = None
    api_url: str = "https://api.dataforseo.com/v3"
    cache_days: int = Field(7, ge=1)
    location_code: int = 2840
    language_code: str = "en"
    timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="DATAFORSEO_",
        case_sensitive=False,
    )

    @property
    def configured(self) -> bool:
        return bool(self.login and self.password)


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = "INFO"
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    request_id_header: str = "X-Request-ID"

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    seo: SEOSettings = Field(default_factory=SEOSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


# Groups are built through default_factory so each reads the environment
settings = Settings()
