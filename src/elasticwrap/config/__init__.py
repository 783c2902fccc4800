"""Configuration for elasticwrap."""

from elasticwrap.config.settings import (
    ConnectionSettings,
    IndexSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "ConnectionSettings",
    "IndexSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
