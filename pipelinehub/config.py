"""Configuration management for the pipelinehub webhook service."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Store (Supabase / PostgREST)
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_service_key: Optional[SecretStr] = Field(None, description="Supabase service role key")
    store_timeout_seconds: float = Field(30.0, description="Timeout for a single store round trip")

    # Shared webhook secrets (per provider)
    github_webhook_secret: Optional[SecretStr] = Field(
        None, description="Secret used to sign GitHub deliveries (X-Hub-Signature-256)"
    )
    gitlab_webhook_secret: Optional[SecretStr] = Field(
        None, description="Secret token GitLab sends in X-Gitlab-Token"
    )
    jenkins_webhook_secret: Optional[SecretStr] = Field(
        None, description="Token Jenkins sends in X-Jenkins-Token or ?token="
    )

    # Account scoping for shared-secret deliveries without a path token
    webhook_default_owner_id: Optional[str] = Field(
        None, description="Account that owns events arriving on shared-secret endpoints"
    )

    # Ingestion
    upsert_max_attempts: int = Field(3, ge=1, description="Compare-and-set retries for pipeline updates")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Render logs as JSON")
    debug: bool = Field(False, description="Expose error detail in 500 responses")

    # Server Settings
    server_host: str = Field("0.0.0.0", description="Server host")
    server_port: int = Field(8000, description="Server port")

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """Get application settings (loaded once per process)."""
    return Settings()
