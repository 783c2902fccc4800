"""elasticwrap — A thin Elasticsearch wrapper with a shared lazy connection and bulk writes.

Quick start::

    from elasticwrap import open_index

    handle = open_index("http://localhost:9200", "articles", "article")
    doc_id = handle.index({"title": "Hello"})
    result = handle.search({"query": {"match": {"title": "hello"}}})
"""

from elasticwrap.connection import ConnectionManager, default_manager
from elasticwrap.exceptions import (
    BulkError,
    ConfigurationError,
    ConnectionError,
    DocumentNotFoundError,
    ElasticWrapError,
    NotAcknowledgedError,
    QueryError,
    RequestError,
)
from elasticwrap.index import IndexHandle, open_index
from elasticwrap.models import BulkResult, SearchHit, SearchResult
from elasticwrap.observability import setup_logging

__version__ = "0.1.0"

__all__ = [
    "BulkError",
    "BulkResult",
    "ConfigurationError",
    "ConnectionError",
    "ConnectionManager",
    "DocumentNotFoundError",
    "ElasticWrapError",
    "IndexHandle",
    "NotAcknowledgedError",
    "QueryError",
    "RequestError",
    "SearchHit",
    "SearchResult",
    "default_manager",
    "open_index",
    "setup_logging",
]
