"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./event_access.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Quota ledger; never above 100, the quota column's check constraint
    MAX_TIER_QUOTA: int = 100

    # Access codes: no 0/O/1/I
    ACCESS_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    ACCESS_CODE_LENGTH: int = 12
    ACCESS_CODE_GROUP_SIZE: int = 4
    ACCESS_CODE_MAX_ATTEMPTS: int = 10

    # Reporting
    REPORT_TIMEZONE: str = "UTC"  # IANA tz

    # Seeded when the users table is empty
    SUPER_ADMIN_USERNAME: str = "admin"
    SUPER_ADMIN_NAME: str = "System Owner"

    class Config:
        env_file = ".env"


settings = Settings()
