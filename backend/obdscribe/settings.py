import os
import uuid
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_AUTH_SECRET = "dev_secret_change_me"


def _make_database_url() -> str:
    """Construct an asyncpg URL from the conventional ``DB_*`` variables.

    ``DATABASE_URL`` wins when present. Otherwise a Cloud SQL Unix socket is
    used when ``CLOUDSQL_INSTANCE_CONNECTION_NAME`` is set, and TCP to
    ``DB_HOST``/``DB_PORT`` in local development.
    """
    explicit = os.getenv("DATABASE_URL", "").strip()
    if explicit:
        return explicit
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    db_name = os.getenv("DB_NAME", "obdscribe")
    instance_connection_name = os.getenv("CLOUDSQL_INSTANCE_CONNECTION_NAME")
    if instance_connection_name:
        return (
            f"postgresql+asyncpg://{user}:{password}@/{db_name}?host=/cloudsql/{instance_connection_name}"
        )
    host = os.getenv("DB_HOST", "127.0.0.1")
    port = os.getenv("DB_PORT", "5432")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"


class Settings(BaseSettings):
    """Global configuration for the OBDscribe backend."""

    environment: Literal["development", "test", "production"] = "development"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    auth_secret: str = DEFAULT_AUTH_SECRET
    session_ttl_days: int = 7

    database_url: str = Field(default_factory=_make_database_url)
    seed_reference_data: bool = True

    project_id: str = Field(
        default_factory=lambda: (
            os.getenv("GOOGLE_CLOUD_PROJECT")
            or os.getenv("GCLOUD_PROJECT")
            or os.getenv("GOOGLE_CLOUD_PROJECT_ID")
            or ""
        )
    )
    location: str = "us-central1"
    standard_model: str = "gemini-2.5-flash"
    premium_model: str = "gemini-2.5-pro"
    model_timeout_seconds: float = 60.0

    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""
    app_base_url: str = "http://localhost:3000"

    rate_limit_max_requests: int = 20
    rate_limit_window_seconds: float = 60.0

    dev_user_id: Optional[uuid.UUID] = None
    dev_shop_id: Optional[uuid.UUID] = None

    model_config = SettingsConfigDict(env_prefix="OBDSCRIBE_", extra="ignore")

    @field_validator("app_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def validate_production_safety(self) -> "Settings":
        dev_ids = (self.dev_user_id, self.dev_shop_id)
        if any(dev_ids) and not all(dev_ids):
            raise ValueError("OBDSCRIBE_DEV_USER_ID and OBDSCRIBE_DEV_SHOP_ID must be set together.")
        explicit_environment = "environment" in self.model_fields_set
        if self.auth_secret == DEFAULT_AUTH_SECRET and (
            self.environment == "production" or not explicit_environment
        ):
            raise ValueError(
                "OBDSCRIBE_AUTH_SECRET must be set unless OBDSCRIBE_ENVIRONMENT is development or test."
            )
        if self.environment == "production":
            if any(dev_ids):
                raise ValueError("The development identity cannot be enabled in production.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def dev_identity_enabled(self) -> bool:
        return (
            self.environment == "development"
            and self.dev_user_id is not None
            and self.dev_shop_id is not None
        )

    @property
    def oauth_redirect_uri(self) -> str:
        return self.google_redirect_uri or f"{self.app_base_url}/auth/google/callback"


settings = Settings()  # type: ignore[call-arg]
