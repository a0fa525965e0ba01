"""Application configuration with strict environment validation."""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file.

    One instance is built by the application factory and handed to every
    component that needs it; nothing reads configuration from module globals.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # --- Security & database ---
    SECRET_KEY: str = Field(..., min_length=16)
    SECRET_KEY_FALLBACKS: list[str] = Field(default_factory=list)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    DATABASE_URL: str = "sqlite:///./storefront.db"
    ASYNC_DATABASE_URL: str | None = None
    DB_ECHO: bool = False
    CREATE_SCHEMA_ON_STARTUP: bool = True
    SEED_CATALOG: bool = False

    # --- API metadata ---
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Storefront API"
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # --- Anonymous sessions ---
    SESSION_HEADER: str = "X-Session-ID"
    SESSION_TOKEN_BYTES: int = 16
    SESSION_TOKEN_MAX_LENGTH: int = 255

    # --- Observability ---
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True
    METRICS_NAMESPACE: str = "storefront"
    METRICS_LATENCY_BUCKETS: list[float] = Field(default_factory=lambda: [0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0])

    # --- Security headers ---
    STRICT_TRANSPORT_SECURITY: str = "max-age=63072000; includeSubDomains; preload"
    CONTENT_SECURITY_POLICY: str = "default-src 'self'; frame-ancestors 'none'; object-src 'none'"
    X_FRAME_OPTIONS: str = "DENY"
    X_CONTENT_TYPE_OPTIONS: str = "nosniff"
    REFERRER_POLICY: str = "no-referrer"

    @staticmethod
    def _split_list(value: str | list[str] | None) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [item for item in value if isinstance(item, str) and item.strip()]

    @staticmethod
    def _split_float_list(value: str | list[float] | None) -> list[float]:
        if value is None:
            return []
        items = value.split(",") if isinstance(value, str) else value
        floats: list[float] = []
        for item in items:
            try:
                floats.append(float(item))
            except (TypeError, ValueError):
                continue
        return floats

    @field_validator("SECRET_KEY_FALLBACKS", "CORS_ORIGINS", mode="before")
    @classmethod
    def validate_lists(cls, value: str | list[str] | None) -> list[str]:
        return cls._split_list(value)

    @field_validator("METRICS_LATENCY_BUCKETS", mode="before")
    @classmethod
    def validate_metric_buckets(cls, value: str | list[float] | None) -> list[float]:
        return cls._split_float_list(value) or [0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0]

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        if value.lower() == "changeme":
            raise ValueError("SECRET_KEY must be set to a non-default, secure value.")
        return value

    @field_validator("SESSION_TOKEN_BYTES")
    @classmethod
    def validate_session_entropy(cls, value: int) -> int:
        # 16 bytes == 128 bits
        if value < 16:
            raise ValueError("SESSION_TOKEN_BYTES must be at least 16.")
        return value

    @field_validator("API_PREFIX")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        value = value.rstrip("/")
        if value and not value.startswith("/"):
            value = f"/{value}"
        return value

    @model_validator(mode="after")
    def ensure_async_database_url(self) -> "Settings":
        """Ensure an async URL is always available."""
        if not self.ASYNC_DATABASE_URL:
            self.ASYNC_DATABASE_URL = self._derive_async_url(self.DATABASE_URL)
        return self

    @staticmethod
    def _derive_async_url(url: str) -> str:
        """Best-effort conversion from sync to async driver."""
        if "+asyncpg" in url or "+aiosqlite" in url:
            return url
        if url.startswith("sqlite:"):
            return url.replace("sqlite:", "sqlite+aiosqlite:", 1)
        if "://" not in url:
            return url

        scheme, rest = url.split("://", 1)
        if scheme.startswith("postgres"):
            return f"postgresql+asyncpg://{rest}"
        return url


def get_settings(**overrides) -> Settings:
    """Build a fresh settings object; keyword overrides win over the environment."""
    return Settings(**overrides)
