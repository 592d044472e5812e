"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DayPlan Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./dayplan.db"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "dayplan"
    openai_api_key: str | None = None
    estimation_model: str = "gpt-4o"
    estimation_temperature: float = 0.2
    task_store_provider: str = "memory"
    calendar_provider: str = "memory"
    completed_log_provider: str = "sql"
    planner_user_id: str = "local"
    plan_list_name: str = "Today's Plan"
    default_time_budget_min: int = 240
    timeline_start_hour: int = 6
    timeline_end_hour: int = 26
    timeline_minute_scale: float = 3.3
    timeline_switch_gap_min: int = 5


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
