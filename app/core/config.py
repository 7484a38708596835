from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Basic settings
    PROJECT_NAME: str = "Bookings Scheduler"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # Database
    DATABASE_URL: str

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    # Slot locking: "redis" in production, "local" for a single process
    SLOT_LOCK_BACKEND: str = "redis"
    SLOT_LOCK_TIMEOUT_SECONDS: int = 30

    @field_validator("SLOT_LOCK_BACKEND")
    @classmethod
    def validate_lock_backend(cls, v):
        if v not in ("redis", "local"):
            raise ValueError("SLOT_LOCK_BACKEND must be 'redis' or 'local'")
        return v

    # Booking behaviour
    PUBLIC_SLOT_STEP_MINUTES: int = 30
    DEFAULT_TIMEZONE: str = "UTC"

    # Domain events (Celery)
    EVENTS_ENABLED: bool = True
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": True}


# Global settings instance
settings = Settings()
