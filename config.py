"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_env_path = Path(__file__).resolve().parent / ".env"

# Load .env before reading the environment so plain os.environ users see it too
load_dotenv(_env_path)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_path, extra="ignore")

    # Only the API process needs it; database.py fails fast when it is missing
    database_url: str = ""
    cache_ttl_seconds: float = 30.0
    api_base_url: str = "http://127.0.0.1:8000"
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    cors_origins: str = "*"  # comma-separated

    @field_validator("database_url", mode="after")
    @classmethod
    def strip_database_url(cls, v: str) -> str:
        return (v or "").strip()

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
