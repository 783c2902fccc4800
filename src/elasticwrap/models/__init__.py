"""Response models."""

from elasticwrap.models.result import BulkItemError, BulkResult, SearchHit, SearchResult, response_body

__all__ = ["BulkItemError", "BulkResult", "SearchHit", "SearchResult", "response_body"]
