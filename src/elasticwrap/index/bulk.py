"""Bulk write mode — Buffers index actions and submits them in batches.

An ``IndexHandle`` is always in one of two modes:

  - ``DirectMode``: every ``index()`` call is sent on its own.
  - ``BufferedMode``: ``index()`` calls are appended to a ``BulkBuffer`` and
    sent as one bulk request once the buffer reaches its threshold.

A flush clears the buffer before submitting. If the submission fails the
batch is lost and ``BulkError`` reports how many actions were dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from elasticsearch import ApiError, Elasticsearch, TransportError

from elasticwrap.exceptions import BulkError, ConfigurationError
from elasticwrap.models.result import BulkResult

logger = logging.getLogger(__name__)


@dataclass
class BulkBuffer:
    """Pending index actions plus the count that triggers a flush."""

    threshold: int
    actions: list[tuple[dict[str, Any], dict[str, Any]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError(f"Bulk size must be at least 1, got {self.threshold}")

    @property
    def pending(self) -> int:
        return len(self.actions)

    @property
    def is_full(self) -> bool:
        return self.pending >= self.threshold

    def add(self, index: str, document: dict[str, Any], doc_id: str = "") -> None:
        header: dict[str, Any] = {"_index": index}
        if doc_id:
            header["_id"] = doc_id
        self.actions.append(({"index": header}, document))

    def flush(self, client: Elasticsearch) -> BulkResult:
        """Submit all pending actions as a single bulk request.

        The buffer is emptied before the request is sent, so a failed
        submission is never retried.

        Returns:
            Per-action outcome of the request. An empty buffer sends nothing.

        Raises:
            BulkError: If the bulk request itself fails.
        """
        if not self.actions:
            return BulkResult()

        batch, self.actions = self.actions, []
        operations: list[dict[str, Any]] = []
        for header, document in batch:
            operations.append(header)
            operations.append(document)

        try:
            response = client.bulk(operations=operations)
        except (ApiError, TransportError) as e:
            logger.error("Bulk request failed, dropping %d actions: %s", len(batch), e)
            raise BulkError(f"Bulk request failed: {e}", dropped=len(batch)) from e

        result = BulkResult.from_response(response, submitted=len(batch))
        if result.errors:
            logger.warning(
                "Bulk request rejected %d of %d actions (first: %s)",
                len(result.errors),
                result.submitted,
                result.errors[0].reason,
            )
        else:
            logger.debug("Bulk request indexed %d actions", result.indexed)
        return result


@dataclass(frozen=True)
class DirectMode:
    """Writes are sent immediately."""


@dataclass(frozen=True)
class BufferedMode:
    """Writes are collected in ``buffer`` until it fills up."""

    buffer: BulkBuffer


WriteMode = DirectMode | BufferedMode
