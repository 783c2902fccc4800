"""Shared connection handling."""

from elasticwrap.connection.manager import ConnectionManager, default_manager, reset_default_manager

__all__ = ["ConnectionManager", "default_manager", "reset_default_manager"]
