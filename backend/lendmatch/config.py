"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lendmatch.db"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Public URL used in review links sent to lenders
    APP_URL: str = "http://localhost:3000"

    # Matching
    MATCH_FAN_OUT: int = 5
    MATCH_OFFER_TTL_HOURS: int = 24

    # Notification delivery (empty URL = log only)
    NOTIFIER_WEBHOOK_URL: str = ""
    NOTIFIER_TIMEOUT_SECONDS: float = 10.0

    # Shared secret for the expiry sweep endpoint (empty = unguarded)
    CRON_SECRET: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.split(":")[0].lower().startswith("sqlite")


# Global settings instance
settings = Settings()
