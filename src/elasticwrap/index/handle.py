"""Index Handle — Document CRUD, search and index administration for one index.

A handle is bound to an index name, a document type and an optional mapping.
It never owns a connection: every request goes through the client of the
``ConnectionManager`` it was given (the process-wide default if none).

Usage::

    handle = open_index("http://localhost:9200", "articles", "article")
    doc_id = handle.index({"title": "Hello"})
    handle.get(doc_id)

    with handle.bulk(500):
        for doc in docs:
            handle.index(doc)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError
from pydantic import BaseModel

from elasticwrap.config.settings import IndexSettings, get_settings
from elasticwrap.connection.manager import ConnectionManager, default_manager
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
from elasticwrap.index.bulk import BufferedMode, BulkBuffer, DirectMode, WriteMode
from elasticwrap.models.result import BulkResult, SearchResult, response_body

logger = logging.getLogger(__name__)

Body = Mapping[str, Any] | BaseModel | str | bytes


def _decode_body(body: Body, what: str) -> dict[str, Any]:
    """Turn a JSON string, mapping or pydantic model into a dict."""
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json")
    if isinstance(body, (str, bytes)):
        try:
            decoded = json.loads(body)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON {what}: {e}") from e
        if not isinstance(decoded, dict):
            raise ConfigurationError(f"{what.capitalize()} must be a JSON object")
        return decoded
    return dict(body)


def _acknowledged(response: Any) -> bool:
    return bool(response_body(response).get("acknowledged", False))


class IndexHandle:
    """Operations against one index of the remote service.

    Args:
        index: Name of the bound index.
        doc_type: Document type name. Current servers are typeless, so the
            value is kept for callers but not sent with requests.
        mapping: Index body (mappings/settings) used by ``create_index``.
            A JSON string is passed through after decoding.
        manager: Connection manager to use. Defaults to ``default_manager()``.
        auto_create: Create the bound index on first use if it is missing.
            Defaults to the ``index.auto_create`` setting.
        settings: Index defaults. Defaults to ``get_settings().index``.
    """

    def __init__(
        self,
        index: str,
        doc_type: str = "",
        mapping: Body | None = None,
        *,
        manager: ConnectionManager | None = None,
        auto_create: bool | None = None,
        settings: IndexSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings().index
        self._index = index
        self._doc_type = doc_type
        self._mapping = _decode_body(mapping, "mapping") if mapping else None
        self._manager = manager or default_manager()
        self._auto_create = self._settings.auto_create if auto_create is None else auto_create
        self._index_checked = False
        self._mode: WriteMode = DirectMode()

    def __repr__(self) -> str:
        return f"IndexHandle(index={self._index!r}, doc_type={self._doc_type!r})"

    @property
    def index_name(self) -> str:
        return self._index

    @property
    def doc_type(self) -> str:
        return self._doc_type

    @property
    def mapping(self) -> dict[str, Any] | None:
        return self._mapping

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def in_bulk(self) -> bool:
        return isinstance(self._mode, BufferedMode)

    @property
    def pending(self) -> int:
        """Number of buffered actions (0 outside bulk mode)."""
        if isinstance(self._mode, BufferedMode):
            return self._mode.buffer.pending
        return 0

    def set_index(self, index: str) -> None:
        """Rebind the handle to another index."""
        self._index = index
        self._index_checked = False

    # ── Connection ───────────────────────────────────────────────────────

    def connect(self) -> Elasticsearch:
        """Make sure the shared client exists and return it.

        Raises:
            ConnectionError: If the client cannot be built.
        """
        client = self._manager.ensure_connection()
        if self._auto_create and not self._index_checked:
            self._index_checked = True
            self._ensure_own_index(client)
        return client

    def _ensure_own_index(self, client: Elasticsearch) -> None:
        # Best effort: failures are logged and the calling operation proceeds.
        try:
            if not self._index_exists(client, self._index):
                self._create_index(client, self._index)
                logger.info("Created missing index %s", self._index)
        except ElasticWrapError as e:
            logger.warning("Could not ensure index %s exists: %s", self._index, e)

    # ── Documents ────────────────────────────────────────────────────────

    def index(self, document: Body, doc_id: str = "") -> str:
        """Store a document.

        In bulk mode the document is buffered and ``""`` is returned; the
        write happens, and can fail, at the next flush.

        Args:
            document: Document body (mapping, pydantic model or JSON string).
            doc_id: Identifier to use. Empty lets the service assign one.

        Returns:
            The identifier of the stored document.

        Raises:
            RequestError: If the request fails.
            BulkError: If this call triggered a flush that failed.
        """
        doc = _decode_body(document, "document")

        if isinstance(self._mode, BufferedMode):
            buffer = self._mode.buffer
            buffer.add(self._index, doc, doc_id)
            if buffer.is_full:
                self._flush(buffer)
            return ""

        client = self.connect()
        kwargs: dict[str, Any] = {"index": self._index, "document": doc}
        if doc_id:
            kwargs["id"] = doc_id
        try:
            response = client.index(**kwargs)
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to index document into '{self._index}': {e}") from e
        return str(response_body(response).get("_id", ""))

    def get(self, doc_id: str) -> dict[str, Any]:
        """Fetch the stored body of a document.

        Raises:
            DocumentNotFoundError: If no document has this identifier.
            RequestError: If the request fails.
        """
        client = self.connect()
        try:
            response = client.get(index=self._index, id=doc_id)
        except NotFoundError as e:
            raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{self._index}'.") from e
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to fetch document '{doc_id}': {e}") from e

        body = response_body(response)
        if not body.get("found", True):
            raise DocumentNotFoundError(f"Document '{doc_id}' not found in '{self._index}'.")
        return body.get("_source") or {}

    def delete(self, doc_id: str) -> bool:
        """Delete a document.

        Returns:
            True if a document was deleted, False if there was none.

        Raises:
            RequestError: If the request fails for another reason.
        """
        client = self.connect()
        try:
            response = client.delete(index=self._index, id=doc_id)
        except NotFoundError:
            logger.debug("Document %s not found in %s, nothing deleted", doc_id, self._index)
            return False
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to delete document '{doc_id}': {e}") from e
        return response_body(response).get("result") == "deleted"

    def search(self, query: Body) -> SearchResult:
        """Run a query, given in the service's own query language, on the bound index.

        Raises:
            QueryError: If the search fails.
        """
        body = _decode_body(query, "query")
        client = self.connect()
        try:
            response = client.search(index=self._index, body=body)
        except (ApiError, TransportError) as e:
            raise QueryError(f"Search on '{self._index}' failed: {e}") from e
        return SearchResult.from_response(response)

    # ── Index administration ─────────────────────────────────────────────

    def index_exists(self, name: str) -> bool:
        return self._index_exists(self.connect(), name)

    def create_index(self, name: str) -> None:
        """Create an index, using the handle's mapping if one is set.

        Raises:
            NotAcknowledgedError: If the service did not acknowledge the index.
            RequestError: If the request fails.
        """
        self._create_index(self.connect(), name)

    def delete_index(self, name: str) -> None:
        """Delete an index.

        Raises:
            NotAcknowledgedError: If the service did not acknowledge the deletion.
            RequestError: If the request fails.
        """
        client = self.connect()
        try:
            response = client.indices.delete(index=name)
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to delete index '{name}': {e}") from e
        if not _acknowledged(response):
            raise NotAcknowledgedError("deletion of index", name)

    def refresh(self, name: str | None = None) -> None:
        """Make recent writes to ``name`` (default: the bound index) searchable."""
        client = self.connect()
        target = name or self._index
        try:
            client.indices.refresh(index=target)
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to refresh index '{target}': {e}") from e

    def _index_exists(self, client: Elasticsearch, name: str) -> bool:
        try:
            return bool(client.indices.exists(index=name))
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to check index '{name}': {e}") from e

    def _create_index(self, client: Elasticsearch, name: str) -> None:
        try:
            if self._mapping:
                response = client.indices.create(index=name, body=self._mapping)
            else:
                response = client.indices.create(index=name)
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to create index '{name}': {e}") from e
        if not _acknowledged(response):
            raise NotAcknowledgedError("creation of index", name)

    # ── Templates ────────────────────────────────────────────────────────

    def put_index_template(self, name: str, body: Body) -> None:
        """Create or replace an index template.

        Raises:
            NotAcknowledgedError: If the service did not acknowledge the template.
            RequestError: If the request fails.
        """
        template = _decode_body(body, "template")
        client = self.connect()
        try:
            response = client.indices.put_template(name=name, body=template)
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to put template '{name}': {e}") from e
        if not _acknowledged(response):
            raise NotAcknowledgedError("creation of template", name)

    def delete_index_template(self, name: str) -> None:
        """Delete an index template.

        Raises:
            NotAcknowledgedError: If the template was not deleted, including
                when it does not exist.
            RequestError: If the request fails.
        """
        client = self.connect()
        try:
            response = client.indices.delete_template(name=name)
        except NotFoundError as e:
            raise NotAcknowledgedError("deletion of template", name) from e
        except (ApiError, TransportError) as e:
            raise RequestError(f"Failed to delete template '{name}': {e}") from e
        if not _acknowledged(response):
            raise NotAcknowledgedError("deletion of template", name)

    # ── Bulk mode ────────────────────────────────────────────────────────

    def start_bulk(self, size: int | None = None) -> None:
        """Buffer subsequent ``index()`` calls, flushing every ``size`` actions.

        Any actions still buffered from an earlier bulk session are dropped.

        Raises:
            ConfigurationError: If ``size`` is below 1.
        """
        if isinstance(self._mode, BufferedMode) and self._mode.buffer.pending:
            logger.warning("Discarding %d unflushed bulk actions", self._mode.buffer.pending)
        threshold = size if size is not None else self._settings.bulk_size
        self._mode = BufferedMode(BulkBuffer(threshold=threshold))

    def flush(self) -> BulkResult:
        """Send buffered actions now. Does nothing outside bulk mode.

        Raises:
            BulkError: If the bulk request fails.
        """
        if isinstance(self._mode, BufferedMode):
            return self._flush(self._mode.buffer)
        return BulkResult()

    def stop_bulk(self) -> BulkResult:
        """Flush buffered actions and return to direct writes.

        The handle is back in direct mode even if the flush fails.

        Raises:
            BulkError: If the final bulk request fails.
        """
        mode, self._mode = self._mode, DirectMode()
        if isinstance(mode, BufferedMode):
            return self._flush(mode.buffer)
        return BulkResult()

    def _flush(self, buffer: BulkBuffer) -> BulkResult:
        if not buffer.pending:
            return BulkResult()
        try:
            client = self.connect()
        except ConnectionError as e:
            dropped = buffer.pending
            buffer.actions.clear()
            logger.error("No connection for bulk flush, dropping %d actions: %s", dropped, e)
            raise BulkError(f"Bulk request failed: {e}", dropped=dropped) from e
        return buffer.flush(client)

    @contextmanager
    def bulk(self, size: int | None = None) -> Iterator[IndexHandle]:
        """Run a block in bulk mode; pending actions are flushed on exit."""
        self.start_bulk(size)
        try:
            yield self
        finally:
            self.stop_bulk()


def open_index(
    url: str = "",
    index: str = "",
    doc_type: str = "",
    mapping: Body | None = None,
    *,
    manager: ConnectionManager | None = None,
    auto_create: bool | None = None,
) -> IndexHandle:
    """Create a handle and make sure its connection is up.

    Args:
        url: Endpoint override. Empty keeps the manager's endpoint, and it is
            ignored once the manager is connected.
        index: Name of the bound index.
        doc_type: Document type name.
        mapping: Index body used when the index is created.
        manager: Connection manager to use. Defaults to ``default_manager()``.
        auto_create: Create the bound index now if it is missing.

    Returns:
        A connected ``IndexHandle``.

    Raises:
        ConnectionError: If the shared client cannot be built.
    """
    manager = manager or default_manager()
    manager.configure_endpoint(url)
    handle = IndexHandle(index, doc_type, mapping, manager=manager, auto_create=auto_create)
    handle.connect()
    return handle
