"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CINEFEED_",
        case_sensitive=False,
        extra="ignore",
    )

    # Fetching
    fetch_timeout: float = 30.0
    fetch_max_retries: int = 3
    fetch_backoff: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True

    # Run coordination
    max_concurrent_sources: int = 4
    source_timeout: float = 300.0

    # Output
    output_dir: str = "docs/feeds"
    routing_file: str | None = None
    reference_timezone: str = "Europe/Rome"

    # Space Cinema API date override, e.g. "2026-02-09T00:00:00"
    showing_date: str | None = None

    log_level: str = "INFO"


# Global settings instance
settings = Settings()
