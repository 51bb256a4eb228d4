"""
Configuration for the Social Graph Service.

Settings are grouped per concern and loaded from environment variables
(``SOCIAL_GRAPH_<SECTION>_<FIELD>``). A module-level ``settings`` instance
is created on import and shared by the factories.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_DATA_DIR = Path(os.environ.get("SOCIAL_GRAPH_DATA_DIR", Path.home() / ".social_graph_service"))


class FalkorDBSettings(BaseSettings):
    """Primary graph backend (FalkorDB, Cypher over the Redis protocol)."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_GRAPH_FALKORDB_", extra="ignore")

    enabled: bool = True
    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: SecretStr | None = None
    graph_name: str = "social_graph"
    max_connections: int = Field(default=16, ge=1)


class HealthSettings(BaseSettings):
    """Health monitor tuning for the graph backend."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_GRAPH_HEALTH_", extra="ignore")

    ttl_seconds: float = Field(default=30.0, gt=0)
    probe_timeout_seconds: float = Field(default=5.0, gt=0)


class FallbackSettings(BaseSettings):
    """Flat-record fallback store (named JSON collections in SQLite)."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_GRAPH_FALLBACK_", extra="ignore")

    db_path: Path = _DEFAULT_DATA_DIR / "fallback.db"
    cache_enabled: bool = True


class ServerSettings(BaseSettings):
    """HTTP / MCP entry point settings."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_GRAPH_SERVER_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    transport: Literal["http", "stdio"] = "http"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class Settings(BaseSettings):
    """Aggregated service settings."""

    model_config = SettingsConfigDict(extra="ignore")

    falkordb: FalkorDBSettings = Field(default_factory=FalkorDBSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    fallback: FallbackSettings = Field(default_factory=FallbackSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


settings = Settings()
