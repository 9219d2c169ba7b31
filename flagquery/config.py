"""
Configuration settings for flagquery.

Uses Pydantic Settings to load environment variables for the database
connection, pooling and timeouts, the query error policy, and logging.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryErrorPolicy(str, Enum):
    """What a query operation does when the database call fails."""

    RETURN_EMPTY = "return-empty"
    PROPAGATE = "propagate"


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("flags", alias="DB_NAME")

    # Connection management
    db_pooling: bool = Field(True, alias="DB_POOLING")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")
    db_pool_timeout_seconds: float = Field(5.0, alias="DB_POOL_TIMEOUT_SECONDS")
    db_connect_timeout_seconds: float = Field(5.0, alias="DB_CONNECT_TIMEOUT_SECONDS")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Query behaviour
    query_timeout_seconds: float = Field(10.0, alias="QUERY_TIMEOUT_SECONDS")
    on_query_error: QueryErrorPolicy = Field(
        QueryErrorPolicy.RETURN_EMPTY, alias="ON_QUERY_ERROR"
    )

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["QueryErrorPolicy", "Settings", "get_settings"]
