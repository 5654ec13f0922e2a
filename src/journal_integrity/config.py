"""
Configuration management using Pydantic Settings.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="JOURNAL_",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Journal Integrity Service"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./journal.db"

    # Certificates
    public_base_url: str = "http://localhost:8000"

    # Appends
    append_conflict_retries: int = 3

    # Witness submission (applies to every backend)
    witness_timeout_seconds: float = 10.0
    witness_max_retries: int = 3
    witness_backoff_seconds: float = 1.0
    witness_marker: str = "#WritingJournalWitness"
    witness_receipt_cache_size: int = 1024

    # Permanent-ledger backend
    ledger_gateway_url: str = ""
    ledger_signing_key: str = ""  # PEM-encoded Ed25519 private key
    ledger_signing_key_id: str = "journal-witness-1"

    # Social-timestamp backend
    social_api_url: str = "https://api.twitter.com/2"
    social_bearer_token: str = ""

    @property
    def ledger_configured(self) -> bool:
        return bool(self.ledger_gateway_url and self.ledger_signing_key)

    @property
    def social_configured(self) -> bool:
        return bool(self.social_api_url and self.social_bearer_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
