"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from elasticsearch import ApiError, NotFoundError

from elasticwrap.config.settings import ConnectionSettings, IndexSettings, Settings
from elasticwrap.connection.manager import ConnectionManager, reset_default_manager
from elasticwrap.index.handle import IndexHandle


def _api_error(cls: type[ApiError] = ApiError, status: int = 500, body: dict[str, Any] | None = None) -> ApiError:
    return cls(message=f"status {status}", meta=MagicMock(status=status), body=body or {})


@pytest.fixture
def api_error() -> Callable[..., ApiError]:
    """Factory for client ``ApiError``s without a real HTTP response."""
    return _api_error


@pytest.fixture
def not_found() -> Callable[..., NotFoundError]:
    def factory(body: dict[str, Any] | None = None) -> NotFoundError:
        return _api_error(NotFoundError, 404, body)  # type: ignore[return-value]

    return factory


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        connection={"url": "http://es.test:9200", "error_log": "discard"},
        index={"bulk_size": 3},
    )


@pytest.fixture
def index_settings(settings: Settings) -> IndexSettings:
    return settings.index


@pytest.fixture
def connection_settings(settings: Settings) -> ConnectionSettings:
    return settings.connection


@pytest.fixture
def es_client() -> MagicMock:
    """A stand-in for ``elasticsearch.Elasticsearch``."""
    client = MagicMock(name="Elasticsearch")
    client.info.return_value = {"cluster_name": "test-cluster", "version": {"number": "8.13.0"}}
    client.indices.exists.return_value = True
    client.indices.create.return_value = {"acknowledged": True, "index": "unit_test"}
    client.indices.delete.return_value = {"acknowledged": True}
    client.indices.put_template.return_value = {"acknowledged": True}
    client.indices.delete_template.return_value = {"acknowledged": True}
    client.bulk.return_value = {"took": 3, "errors": False, "items": []}
    return client


@pytest.fixture
def client_factory(es_client: MagicMock) -> MagicMock:
    return MagicMock(name="client_factory", return_value=es_client)


@pytest.fixture
def manager(connection_settings: ConnectionSettings, client_factory: MagicMock) -> ConnectionManager:
    return ConnectionManager(connection_settings, client_factory=client_factory)


@pytest.fixture
def handle(manager: ConnectionManager, index_settings: IndexSettings) -> IndexHandle:
    return IndexHandle("unit_test", "test", manager=manager, settings=index_settings)


@pytest.fixture(autouse=True)
def _reset_default_manager():
    yield
    reset_default_manager()
