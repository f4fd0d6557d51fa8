"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "MealCoach"
    app_version: str = "1.0.0"
    debug: bool = True

    # Storage
    storage_type: str = "local"  # local, memory
    local_storage_path: str = "./data"
    storage_quota_bytes: int = 5 * 1024 * 1024  # same budget as browser localStorage

    # LLM Provider settings
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_timeout_seconds: float = 30.0
    llm_temperature: float = 0.7

    # Retry policy for sends and edits (the transport itself never retries)
    provider_max_retries: int = 3
    provider_retry_delay_seconds: float = 1.0
    provider_backoff_multiplier: float = 2.0

    # Duplicate detection
    duplicate_window_minutes: float = 5.0
    duplicate_threshold: float = 0.85

    # Calendar day used to bucket entries into daily summaries
    day_timezone: str = "UTC"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/mealcoach.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
