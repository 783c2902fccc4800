"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (ELASTICWRAP_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, EnvSettingsSource

LogSink = Literal["stderr", "stdout", "discard"]


class ConnectionSettings(BaseModel):
    """Connection to the remote Elasticsearch service."""

    url: str = Field(default="http://127.0.0.1:9200", description="Service endpoint URL")
    username: str | None = Field(default="elastic", description="HTTP basic-auth username")
    password: str | None = Field(default="changeme", description="HTTP basic-auth password")
    api_key: str | None = Field(default=None, description="API key (takes precedence over basic auth)")
    verify_certs: bool = Field(default=True, description="Whether to verify TLS certificates")
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    verify_on_connect: bool = Field(
        default=True,
        description="Issue an info() round-trip before caching a new client",
    )
    error_log: LogSink = Field(default="stderr", description="Destination of client warnings and errors")
    info_log: LogSink = Field(default="discard", description="Destination of client informational logs")

    @field_validator("url")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        return v.strip().rstrip("/")


class IndexSettings(BaseModel):
    """Defaults applied to index handles."""

    auto_create: bool = Field(
        default=False,
        description="Create the bound index (with its mapping) on first connection if missing",
    )
    bulk_size: int = Field(default=1000, ge=1, description="Default flush threshold in bulk mode")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the ELASTICWRAP_ prefix.
    Nested settings use double underscores: ELASTICWRAP_CONNECTION__URL=http://es:9200

    Example:
        ELASTICWRAP_CONNECTION__URL=https://search.internal:9200
        ELASTICWRAP_CONNECTION__PASSWORD=s3cret
        ELASTICWRAP_INDEX__BULK_SIZE=500
    """

    model_config = {
        "env_prefix": "ELASTICWRAP_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        # Init kwargs outrank every other source, so env values are merged on top here.
        env_values = _deep_merge(DotEnvSettingsSource(cls)(), EnvSettingsSource(cls)())
        return cls(**_deep_merge(data, env_values))


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once from the environment."""
    return Settings()
