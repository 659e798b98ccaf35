"""Service configuration.

Values come from environment variables (or a local ``.env``) and are read
once per process. ``STORAGE_BACKEND`` picks the store for the lifetime of
the process:

    STORAGE_BACKEND=memory   in-process store seeded with starter content
    STORAGE_BACKEND=mongo    MongoDB at DATABASE_URL / DATABASE_NAME
    STORAGE_BACKEND=sql      any SQLAlchemy URL in SQL_DATABASE_URL
"""

import functools
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageBackend = Literal["memory", "mongo", "sql"]


class Settings(BaseSettings):
    storage_backend: StorageBackend = Field("memory", description="Which store backs the service")
    database_url: str = Field("mongodb://localhost:27017", description="MongoDB connection URL")
    database_name: str = Field("soulelevate", description="MongoDB database name")
    sql_database_url: str = Field("sqlite:///./soulelevate.db", description="SQLAlchemy database URL")
    seed_data: bool = Field(True, description="Seed the in-memory store with starter content")
    log_level: str = Field("INFO")
    port: int = Field(8000)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
