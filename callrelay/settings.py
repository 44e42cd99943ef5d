"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url() -> str:
    """Get database URL converted for asyncpg driver."""
    url = os.environ.get("DATABASE_URL", "") or settings.database_url
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        url = url.rstrip('?&')
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Postgres
    database_url: str = "postgresql+asyncpg://localhost:5432/callrelay"

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"
    public_base_url: str | None = None  # Base URL providers use to reach our webhooks

    # Vapi (voice-assistant provider)
    vapi_api_key: str | None = None
    vapi_base_url: str = "https://api.vapi.ai"
    vapi_assistant_id: str | None = None
    vapi_phone_number_id: str | None = None  # Looked up from the account when unset

    # Telnyx (telephony provider)
    telnyx_api_key: str | None = None
    telnyx_api_base: str = "https://api.telnyx.com/v2"
    telnyx_connection_id: str | None = None
    telnyx_phone_number: str | None = None

    provider_request_timeout_seconds: float = 30.0

    # Escalation
    escalation_provider: str = "vapi"  # "vapi" or "telnyx"
    escalation_timeout_seconds: int = 90
    relay_claim_lease_seconds: int = 60  # A relay claim older than this no longer blocks the timeout

    # Fallback business configuration when no business_profiles row exists
    owner_phone: str | None = None
    business_name: str = "the business"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
