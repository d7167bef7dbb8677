"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Study Group Platform API"
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"

    # Database
    # database_url_override (e.g. a hosted Postgres DSN with sslmode=require)
    # takes precedence over the individual postgres_* parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studygroup"
    postgres_password: str = ""
    postgres_db: str = "studygroup"

    def _base_url(self) -> URL:
        if self.database_url_override:
            raw = self.database_url_override
            if raw.startswith("postgres://"):
                raw = "postgresql://" + raw[len("postgres://"):]
            return make_url(raw)
        return URL.create(
            "postgresql",
            username=self.postgres_user,
            password=self.postgres_password,
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
        )

    @computed_field
    @property
    def database_url(self) -> str:
        """Async URL for the application engine (asyncpg or aiosqlite)."""
        url = self._base_url()
        if url.get_backend_name() == "postgresql":
            # asyncpg rejects libpq query params; SSL goes through connect_args
            url = url.set(drivername="postgresql+asyncpg", query={})
        elif url.get_backend_name() == "sqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        return url.render_as_string(hide_password=False)

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Whether the override asks for SSL (sslmode=require or ssl=require)."""
        query = self._base_url().query
        return query.get("sslmode") == "require" or query.get("ssl") == "require"

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync URL for Alembic (psycopg2 or plain sqlite)."""
        url = self._base_url()
        url = url.set(drivername=url.get_backend_name())
        return url.render_as_string(hide_password=False)

    # Auth / JWT
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_refresh_secret_key: str  # Required - signs refresh tokens only
    jwt_algorithm: str = "HS256"
    jwt_access_expire_minutes: int = 15
    jwt_refresh_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Passwords
    bcrypt_rounds: int = 12
    password_reset_expire_minutes: int = 60

    # Google OAuth
    google_client_id: str  # Required - get from Google Cloud Console

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]
    frontend_url: str = "http://localhost:5173"

    # Cookies
    # Set to true when frontend and backend are on different domains
    # This uses samesite="none" + secure=True instead of samesite="lax"
    cookie_cross_domain: bool = False


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
