"""
Configuration settings for libsql-orm.

Uses Pydantic Settings to load environment variables for the database
connection, logging, and query defaults. Values come from the process
environment or a local `.env` file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = Field("file:libsql_orm.db", alias="LIBSQL_DATABASE_URL")
    auth_token: Optional[str] = Field(None, alias="LIBSQL_AUTH_TOKEN")
    http_timeout_seconds: Optional[float] = Field(None, alias="LIBSQL_HTTP_TIMEOUT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Query defaults
    default_per_page: int = Field(20, alias="ORM_DEFAULT_PER_PAGE", gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_remote(self) -> bool:
        return not (self.database_url.startswith("file:") or self.database_url == ":memory:")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
