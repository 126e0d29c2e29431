"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage backend: "memory" or "supabase"
    STORE_BACKEND: str = "memory"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Store call bounds
    STORE_POINT_TIMEOUT_SECONDS: float = 10.0
    STORE_SCAN_TIMEOUT_SECONDS: float = 30.0

    # Link lifecycle
    LINK_TTL_SECONDS: int = 30

    # Scheduler
    SWEEP_INTERVAL_SECONDS: int = 5
    SCHEDULER_ENABLED: bool = True

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
