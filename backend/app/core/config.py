"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

ONE_MINUTE_MS = 60 * 1000
ONE_HOUR_MS = 60 * ONE_MINUTE_MS
ONE_DAY_MS = 24 * ONE_HOUR_MS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Streak Engine Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://streaks@localhost:5432/streaks"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "streak-engine"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    daily_reset_hour: int = 0
    daily_reset_minute: int = 0
    jobs_run_on_startup: bool = False
    notifications_enabled: bool = False
    notifications_provider: str = "noop"

    # Streak engine tuning
    habit_grace_period_ms: int = 2 * ONE_HOUR_MS
    habit_minimum_gap_ms: int = ONE_HOUR_MS
    reset_interval_ms: int = ONE_DAY_MS
    reset_grace_period_ms: int = 15 * ONE_MINUTE_MS
    milestone_thresholds: List[int] = [7, 30, 100]
    user_lock_nowait: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
