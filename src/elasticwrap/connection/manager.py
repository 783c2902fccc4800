"""Connection Manager — Lazily creates and shares one Elasticsearch client.

Every ``IndexHandle`` holds a reference to a manager and asks it for the
client before each request. The manager builds the client on first use and
returns the same instance afterwards. A failed build caches nothing, so the
next call starts over.

Example:
    >>> manager = ConnectionManager(settings.connection)
    >>> client = manager.ensure_connection()
    >>> manager.ensure_connection() is client
    True
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from elasticsearch import Elasticsearch

from elasticwrap.config.settings import ConnectionSettings, get_settings
from elasticwrap.exceptions import ConnectionError
from elasticwrap.models.result import response_body
from elasticwrap.observability.logging import configure_transport_logging

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Elasticsearch]


class ConnectionManager:
    """Owns the single shared client for one endpoint.

    Args:
        settings: Connection settings (endpoint, credentials, log sinks).
        client_factory: Callable building the client from keyword arguments.
            Defaults to ``elasticsearch.Elasticsearch``.
    """

    def __init__(
        self,
        settings: ConnectionSettings | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings.model_copy() if settings else ConnectionSettings()
        self._client_factory = client_factory or Elasticsearch
        self._client: Elasticsearch | None = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        """The endpoint the client is (or will be) bound to."""
        return self._settings.url

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def configure_endpoint(self, url: str) -> None:
        """Override the endpoint used by the next client build.

        An empty string keeps the current endpoint. Once a client exists the
        override is ignored, since the manager never targets two endpoints.
        """
        url = url.strip().rstrip("/")
        if not url or url == self._settings.url:
            return
        with self._lock:
            if self._client is not None:
                logger.warning(
                    "Ignoring endpoint %s: already connected to %s", url, self._settings.url
                )
                return
            self._settings = self._settings.model_copy(update={"url": url})

    def ensure_connection(self) -> Elasticsearch:
        """Return the shared client, building it on first use.

        Returns:
            The shared ``Elasticsearch`` client.

        Raises:
            ConnectionError: If the client cannot be built or verified.
        """
        client = self._client
        if client is not None:
            return client

        with self._lock:
            if self._client is None:
                self._client = self._new_client()
            return self._client

    @property
    def client(self) -> Elasticsearch:
        return self.ensure_connection()

    def close(self) -> None:
        """Close and forget the shared client."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def _client_kwargs(self) -> dict[str, Any]:
        s = self._settings
        kwargs: dict[str, Any] = {
            "hosts": [s.url],
            "request_timeout": s.request_timeout,
            "verify_certs": s.verify_certs,
        }
        if s.api_key:
            kwargs["api_key"] = s.api_key
        elif s.username and s.password:
            kwargs["basic_auth"] = (s.username, s.password)
        return kwargs

    def _new_client(self) -> Elasticsearch:
        logger.info("Opening new Elastic connection to %s", self._settings.url)
        configure_transport_logging(self._settings.error_log, self._settings.info_log)

        try:
            client = self._client_factory(**self._client_kwargs())
        except Exception as e:
            logger.error("Failed to create Elasticsearch client for %s: %s", self._settings.url, e)
            raise ConnectionError(f"Failed to create Elasticsearch client: {e}") from e

        if self._settings.verify_on_connect:
            try:
                info = response_body(client.info())
            except Exception as e:
                client.close()
                logger.error("Failed to connect to Elasticsearch at %s: %s", self._settings.url, e)
                raise ConnectionError(f"Failed to connect to Elasticsearch: {e}") from e
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to Elasticsearch cluster: %s (v%s)", cluster, version)

        return client


_default_manager: ConnectionManager | None = None
_default_lock = threading.Lock()


def default_manager() -> ConnectionManager:
    """Return the process-wide manager, created from ``get_settings()`` on first use."""
    global _default_manager
    with _default_lock:
        if _default_manager is None:
            _default_manager = ConnectionManager(get_settings().connection)
        return _default_manager


def reset_default_manager() -> None:
    """Close and drop the process-wide manager."""
    global _default_manager
    with _default_lock:
        if _default_manager is not None:
            _default_manager.close()
        _default_manager = None
