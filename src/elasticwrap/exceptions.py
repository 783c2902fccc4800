"""Exceptions raised by elasticwrap."""


class ElasticWrapError(Exception):
    """Base exception for all elasticwrap errors."""


class ConnectionError(ElasticWrapError):
    """Raised when the shared client cannot be built or verified."""


class ConfigurationError(ElasticWrapError):
    """Raised when settings or call arguments are invalid."""


class RequestError(ElasticWrapError):
    """Raised when a single request to the service fails."""


class DocumentNotFoundError(RequestError):
    """Raised when a requested document does not exist."""


class QueryError(RequestError):
    """Raised when a search query fails."""


class BulkError(RequestError):
    """Raised when a bulk submission fails. The batch is not retried."""

    def __init__(self, message: str, dropped: int = 0) -> None:
        super().__init__(message)
        self.dropped = dropped


class NotAcknowledgedError(ElasticWrapError):
    """Raised when the service answers without acknowledging an administrative change."""

    def __init__(self, operation: str, name: str) -> None:
        super().__init__(f"elasticsearch did not acknowledge {operation} '{name}'")
        self.operation = operation
        self.name = name
