"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DreamPath Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://dreampath@localhost:5432/dreampath"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    plan_generation_timeout_seconds: float = 45.0
    fallback_time_horizon_weeks: int = 6
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "dreampath"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
