"""Integration test fixtures — a live Elasticsearch on localhost:9200.

Start one with:
    docker run -d -p 9200:9200 -e discovery.type=single-node -e xpack.security.enabled=false \
        docker.elastic.co/elasticsearch/elasticsearch:8.13.4

Tests are skipped when no node answers.
"""

from __future__ import annotations

import time

import httpx
import pytest

from elasticwrap.config.settings import ConnectionSettings
from elasticwrap.connection.manager import ConnectionManager

ES_HOST = "http://localhost:9200"


def _wait_for_service(url: str, timeout: float = 30.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=5, auth=("elastic", "changeme"))
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running."""
    if not _wait_for_service(ES_HOST):
        pytest.skip(f"Elasticsearch not available at {ES_HOST}")
    return ES_HOST


@pytest.fixture(scope="module")
def live_manager(elasticsearch_ready: str):
    manager = ConnectionManager(ConnectionSettings(url=elasticsearch_ready))
    yield manager
    manager.close()

