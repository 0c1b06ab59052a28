"""Application settings and configuration."""
import json
import secrets
from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.plans import FREE_TIER_LIMIT

QUOTA_STORE_BACKENDS = ("memory", "redis", "firestore")
IDENTITY_BACKENDS = ("jwt", "firebase")


def _generate_dev_secret() -> str:
    """Generate a random secret for development use.

    Tokens issued with this key won't survive server restarts, which is
    acceptable in development.  Production **must** set explicit secrets
    via environment variables; the startup validator enforces this.
    """
    return secrets.token_urlsafe(32)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Analysis Relay"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Namespace prefix for every quota document (one per deployed app)
    app_namespace: str = "default-app-id"

    # Quota
    free_tier_limit: int = FREE_TIER_LIMIT

    # Quota store
    quota_store_backend: str = "memory"  # memory, redis, firestore
    redis_url: str = "redis://localhost:6379/0"
    firestore_project: Optional[str] = None
    firestore_database: Optional[str] = None

    @field_validator("quota_store_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        v = (v or "memory").strip().lower()
        if v not in QUOTA_STORE_BACKENDS:
            raise ValueError(
                f"QUOTA_STORE_BACKEND must be one of {', '.join(QUOTA_STORE_BACKENDS)} (got: {v!r})"
            )
        return v

    # Authentication / JWT
    jwt_secret_key: str = ""

    @field_validator("jwt_secret_key", mode="before")
    @classmethod
    def fill_empty_secret(cls, v: str) -> str:
        """Generate a random secret when no value is provided.

        This keeps development functional without a .env file while ensuring
        production never silently falls back to a guessable default.
        """
        if not v:
            return _generate_dev_secret()
        return v

    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Identity verification
    identity_backend: str = "jwt"  # jwt, firebase
    firebase_project_id: Optional[str] = None  # falls back to firestore_project

    @field_validator("identity_backend", mode="before")
    @classmethod
    def normalize_identity_backend(cls, v: str) -> str:
        v = (v or "jwt").strip().lower()
        if v not in IDENTITY_BACKENDS:
            raise ValueError(
                f"IDENTITY_BACKEND must be one of {', '.join(IDENTITY_BACKENDS)} (got: {v!r})"
            )
        return v

    # CORS - stored as str to prevent pydantic-settings auto-JSON-parse failures
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list, stripping trailing slashes."""
        v = self.cors_origins.strip()
        if v.startswith("["):
            try:
                origins = json.loads(v)
                return [o.rstrip("/") for o in origins]
            except json.JSONDecodeError:
                pass
        return [origin.strip().strip("'\"").rstrip("/") for origin in v.split(",") if origin.strip()]

    # Anthropic (AI analysis)
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 4096
    oracle_timeout_seconds: float = 60.0

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"

    # Sentry
    sentry_dsn: Optional[str] = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    def validate_production_secrets(self) -> None:
        """Validate that production secrets and critical API keys are configured.

        Called automatically by get_settings().  In production/staging the
        app refuses to start unless explicit, strong secrets are provided
        via environment variables.
        """
        if self.environment in ("production", "staging"):
            if len(self.jwt_secret_key) < 32:
                raise ValueError("JWT_SECRET_KEY must be set to at least 32 characters in production!")
            if not self.anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY is required in production!")
            # Memory store is per-process
            if self.quota_store_backend == "memory":
                raise ValueError("QUOTA_STORE_BACKEND=memory is not allowed in production!")

        if self.free_tier_limit < 0:
            raise ValueError("FREE_TIER_LIMIT must not be negative")
        if self.identity_backend == "firebase" and not (
            self.firebase_project_id or self.firestore_project
        ):
            raise ValueError("IDENTITY_BACKEND=firebase requires FIREBASE_PROJECT_ID")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Automatically validates that production/staging deployments have
    proper secrets configured. The app refuses to start otherwise.
    """
    s = Settings()
    s.validate_production_secrets()
    return s


# Global settings instance
settings = get_settings()
