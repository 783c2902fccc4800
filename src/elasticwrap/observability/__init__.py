"""Logging setup for elasticwrap and the underlying client library."""

from elasticwrap.observability.logging import configure_transport_logging, setup_logging

__all__ = ["configure_transport_logging", "setup_logging"]
