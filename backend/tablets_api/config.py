"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - database_url has no default; its absence is reported, never papered over

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults for all non-secret settings: works out-of-the-box behind a PaaS proxy
"""

from functools import lru_cache
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str | None) -> str | None:
        """Hosted Postgres hands out postgres:// URLs; the async engine needs postgresql+asyncpg://."""
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v:
            return None
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                v = v.replace(prefix, "postgresql+asyncpg://", 1)
                break
        return _strip_sslmode(v)

    database_pool_size: int = 5
    database_max_overflow: int = 5

    # Schema bootstrap endpoint
    migration_secret_key: str | None = None

    # API
    cors_origins: list[str] = ["*"]
    frontend_url: str | None = None
    static_dir: str = "static"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.cors_origins)
        frontend = (self.frontend_url or "").rstrip("/")
        if frontend and frontend not in origins:
            origins.append(frontend)
        return origins


def _strip_sslmode(url: str) -> str:
    # asyncpg rejects libpq's sslmode query parameter
    parts = urlsplit(url)
    if not parts.query:
        return url
    params = [
        (k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True)
        if k != "sslmode"
    ]
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment),
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
