"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "The Quarterdeck"
    debug: bool = True
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://quarterdeck:quarterdeck@db:5432/quarterdeck"
    database_echo: bool = False

    # Redis (Celery broker + result backend)
    redis_url: str = "redis://redis:6379/0"

    # Admin routes expect this value in the X-Admin-Key header
    admin_key: str = "dev-admin-key-change-in-production"

    # Email / SMTP
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_from: str = "bookings@thequarterdeck.pk"
    smtp_reply_to: str | None = None
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = False
    smtp_timeout: float = 30.0

    # Venue
    venue_timezone: str = "Asia/Karachi"
    opening_time: str = "06:00"  # HH:MM
    closing_time: str = "23:00"  # HH:MM
    off_peak_start: str = "06:00"  # HH:MM, inclusive
    off_peak_end: str = "17:00"  # HH:MM, exclusive

    # Outbox delivery
    outbox_batch_size: int = 200
    outbox_max_attempts: int = 5

    model_config = {"env_prefix": "QD_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
