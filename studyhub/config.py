"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

_SCHEMES = {
    # scheme prefix -> (async form, sync form)
    "postgres": ("postgresql+asyncpg", "postgresql"),
    "postgresql": ("postgresql+asyncpg", "postgresql"),
    "postgresql+asyncpg": ("postgresql+asyncpg", "postgresql"),
    "sqlite": ("sqlite+aiosqlite", "sqlite"),
    "sqlite+aiosqlite": ("sqlite+aiosqlite", "sqlite"),
}


def _with_driver(url: str, *, async_driver: bool) -> str:
    """Swap the URL scheme for the async or blocking driver. Unknown schemes pass through."""
    scheme, sep, rest = url.partition("://")
    if not sep or scheme not in _SCHEMES:
        return url
    async_scheme, sync_scheme = _SCHEMES[scheme]
    return f"{async_scheme if async_driver else sync_scheme}://{rest}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Study Hub"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database
    # A full URL in database_url_override (hosted Postgres, or SQLite for tests) wins over the parts below
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studyhub"
    postgres_password: str = ""
    postgres_db: str = "studyhub"

    def _base_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def database_url(self) -> str:
        """Async URL: asyncpg for Postgres, aiosqlite for SQLite."""
        url = _with_driver(self._base_url(), async_driver=True)
        # asyncpg rejects libpq query params; SSL goes through connect_args in session.py
        if url.startswith("postgresql+asyncpg://"):
            url = url.split("?")[0]
        return url

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        query = self._base_url().partition("?")[2]
        return "sslmode=require" in query or "ssl=require" in query

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Blocking-driver URL for Alembic."""
        return _with_driver(self._base_url(), async_driver=False)

    # Auth / JWT
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days
    reset_token_expire_minutes: int = 30
    bcrypt_rounds: int = 12

    # Only addresses under this domain may sign up or reset a password
    allowed_email_domain: str = "mail.apu.edu.my"
    institution_name: str = "APU"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_max_age: int = 86400

    # Cookies
    # Set to true when frontend and backend are on different domains
    # This uses samesite="none" + secure=True instead of samesite="lax"
    cookie_cross_domain: bool = False

    # Object storage (S3 or any S3-compatible endpoint)
    aws_access_key_id: str
    aws_secret_access_key: str
    aws_s3_bucket: str
    aws_s3_region: str = "ap-southeast-1"
    aws_s3_endpoint_url: str | None = None  # Set for MinIO/LocalStack (e.g. http://localhost:9000)
    storage_prefix: str = "study-materials"

    # Anthropic API
    anthropic_api_key: str

    # LLM Configuration
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 4000
    llm_temperature: float = 0.7

    # Password reset email (SMTP). Delivery is skipped when smtp_host is unset.
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    email_from: str = "Study Hub <no-reply@studyhub.local>"
    frontend_url: str = "http://localhost:3000"

    # Rate limiting: requests per window, per client IP and operation kind
    rate_limit_api: int = 100
    rate_limit_api_window_seconds: int = 15 * 60
    rate_limit_auth: int = 5
    rate_limit_auth_window_seconds: int = 15 * 60
    rate_limit_upload: int = 20
    rate_limit_upload_window_seconds: int = 60 * 60
    rate_limit_chat: int = 50
    rate_limit_chat_window_seconds: int = 60 * 60
    rate_limit_sweep_seconds: int = 5 * 60

    # Size limits
    max_request_size_bytes: int = 10 * 1024 * 1024  # 10MB
    max_file_size_bytes: int = 50 * 1024 * 1024  # 50MB
    max_process_file_size_bytes: int = 100 * 1024 * 1024  # 100MB
    extraction_max_chars: int = 500_000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
