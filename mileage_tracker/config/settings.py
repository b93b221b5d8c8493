from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Staff Mileage Tracker"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API Settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"

    # Database Settings
    DATABASE_URL: str = "sqlite:///./mileage_tracker.db"
    DATABASE_POOL_RECYCLE: int = 300

    # CORS Settings
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_JSON: bool = False

    # Mileage and cost accounting
    DEFAULT_COST_PER_MILE: float = 0.67  # IRS standard mileage rate
    CO2_LBS_PER_MILE: float = 0.404  # average passenger car
    AGENCY_TIMEZONE: str = "UTC"

    # Visit estimates
    VISIT_AVG_SPEED_MPH: float = 25.0  # city driving

    # Staff location status
    LOCATION_STALE_MINUTES: int = 30
    TRIP_STALE_MINUTES: int = 480
    DRIVING_SPEED_MPH: float = 5.0

    # Rollups
    WEEKLY_WINDOW_DAYS: int = 7

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
