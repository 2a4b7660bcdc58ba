"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "TaskFlow Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://taskflow@localhost:5432/taskflow"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "taskflow"

    identity_url: str = "http://localhost:54321"
    identity_anon_key: str = ""
    identity_jwt_secret: str = "local-dev-jwt-secret"
    identity_jwt_audience: str = "authenticated"
    http_timeout_seconds: float = 10.0

    storage_provider: str = "local"
    storage_bucket: str = "task-attachments"
    storage_root: str = "./storage"
    storage_url: str | None = None
    storage_service_key: str | None = None
    attachment_max_bytes: int = 10 * 1024 * 1024

    timezone: str = "Asia/Seoul"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    storage_sweep_interval_minutes: int = 60
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
