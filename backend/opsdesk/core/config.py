"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "OpsDesk Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://opsdesk@localhost:5432/opsdesk"
    timezone: str = "UTC"
    bulk_import_max_tasks_per_day: int = 10
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "opsdesk"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    generation_interval_minutes: int = 15
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
