"""
VitalGate Configuration
=======================
All environment variables in one place. Pydantic Settings validates
types at startup so a missing secret or a malformed TTL fails on boot
rather than on the first login.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Application ---
    app_name: str = "vitalgate-api"
    app_version: str = "1.0.0"
    # Reported as "entity" on every JSON response body
    api_entity: str = "android.health-connect.api"
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    # Request bodies above this size are rejected with 413
    max_body_bytes: int = 15 * 1024 * 1024

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- JWT ---
    jwt_secret: str = "your-super-secret-key-change-in-production"
    jwt_refresh_secret: str = "your-refresh-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expiry_seconds: int = 900  # 15 minutes
    refresh_token_expiry_seconds: int = 604800  # 7 days

    # --- OpenWeatherMap ---
    open_weather_api_key: str = ""
    open_weather_base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    open_weather_timeout_seconds: float = 10.0

    # --- Sync client (vitalgate sync) ---
    sync_base_url: str = ""
    sync_access_token: str = ""
    sync_history_range: str = "1 week"
    sync_interval: str = "Every 1 hour"
    sync_batch_size: int = 500
    sync_max_retries: int = 3
    sync_retry_delay_seconds: float = 1.0
    sync_timeout_seconds: float = 30.0
    sync_history_log_path: str = "sync_history.json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
