# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,  # Environment vars are uppercase
        extra="ignore",      # Ignore unexpected vars instead of raising
    )

    # Core application settings
    DATABASE_URL: str
    HOST: str = "0.0.0.0"
    PORT: int = 8101
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_FILE: str = "app.log"

    # CORS settings
    ALLOWED_ORIGINS: list[str] = ["*"]  # In production, specify actual origins
    ALLOW_CREDENTIALS: bool = True
    ALLOWED_METHODS: list[str] = ["*"]
    ALLOWED_HEADERS: list[str] = ["*"]

    # Payment gateway settings (PortOne v2)
    # Missing secret is reported per request, not at startup
    PORTONE_API_SECRET: str | None = None
    PORTONE_API_BASE_URL: str = "https://api.portone.io"
    PORTONE_CURRENCY: str = "KRW"
    PORTONE_TIMEOUT_SECONDS: float = 30.0
    PORTONE_WEBHOOK_SECRET: str | None = None
    PORTONE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Subscription billing period
    SUBSCRIPTION_PERIOD_DAYS: int = 30
    SUBSCRIPTION_GRACE_DAYS: int = 1
    NEXT_SCHEDULE_HOUR: int = 10  # UTC hour for the next scheduled charge

    # Magazine listing
    MAGAZINE_LIST_DEFAULT_LIMIT: int = 10


def _validate_settings(settings: Settings) -> None:
    """Validate critical application settings."""
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL is required")
    if not 0 <= settings.NEXT_SCHEDULE_HOUR <= 23:
        raise ValueError("NEXT_SCHEDULE_HOUR must be between 0 and 23")

    # Environment-specific validations
    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        print("WARNING: DEBUG is enabled in production. Consider setting DEBUG=False.")
    if settings.ENVIRONMENT == "production" and not settings.PORTONE_WEBHOOK_SECRET:
        print("WARNING: PORTONE_WEBHOOK_SECRET is not set. Webhook signatures will not be verified.")


# Initialize settings with error handling
try:
    settings = Settings()
    _validate_settings(settings)
except Exception as e:
    print(f"Error initializing settings: {e}")
    raise
