"""
Configuration for the HaulHub backend.

Values come from environment variables or a local ``.env`` file:
- DATABASE_URL: SQLAlchemy URL of the system of record
- LOG_LEVEL / LOG_JSON: structlog output
- CORS_ORIGINS: comma separated list of allowed origins
- SEED_DEFAULTS: preload default users and trucks into an empty database
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment variables configuration."""

    database_url: str = Field("sqlite:///./haulhub.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")
    seed_defaults: bool = Field(True, alias="SEED_DEFAULTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
