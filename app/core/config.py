"""
Configuration - logging service settings
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Configuration
    PROJECT_NAME: str = "M-Pesa Payments Logging API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # Log sinks
    LOG_DIR: str = "logs"
    LOGGER_NAME: str = "mpesa_api"
    LOG_CONSOLE_COLORS: bool = True

    # Rotation (10 MiB, hourly)
    LOG_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_ROTATION_INTERVAL_SECONDS: float = 3600

    # Slow thresholds in milliseconds
    SLOW_REQUEST_THRESHOLD_MS: float = 1000
    SLOW_OPERATION_THRESHOLD_MS: float = 1000

    # Monitoring endpoints are open when no key is configured
    MONITORING_API_KEY: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
