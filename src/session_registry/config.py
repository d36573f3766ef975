"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from session_registry.adapters.remote_transport import RequestPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded once from environment variables."""

    organization_name: str
    application_name: str
    client_id: str
    client_secret: str
    remote_base_url: str
    admin_token: str
    remote_timeout_seconds: float | None = None
    remote_max_retries: int = 0
    remote_backoff_seconds: float = 0.5
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
        frozen=True,
    )

    def request_policy(self) -> RequestPolicy:
        """Build the remote call policy from the configured limits."""
        return RequestPolicy(
            timeout=self.remote_timeout_seconds,
            max_retries=self.remote_max_retries,
            backoff_seconds=self.remote_backoff_seconds,
        )
