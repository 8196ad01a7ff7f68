from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    PROJECT_NAME: str = "Handyman Marketplace API"
    API_V1_STR: str = "/api/v1"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'marketplace.db'}"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    # Non-admin callers may not cancel inside this many hours of the appointment
    CANCELLATION_WINDOW_HOURS: int = 24

    PUBLIC_REVIEWS_DEFAULT_LIMIT: int = 10
    PUBLIC_REVIEWS_MAX_LIMIT: int = 50
    ADMIN_BOOKINGS_MAX_LIMIT: int = 100
    TECHNICIAN_HISTORY_DEFAULT_LIMIT: int = 20
    TECHNICIAN_HISTORY_MAX_LIMIT: int = 100

    # Default currency code used in payment records and responses
    DEFAULT_CURRENCY: str = "BHD"

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
