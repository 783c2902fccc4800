"""Result models — Parsed responses returned by ``IndexHandle``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field


def response_body(response: Any) -> dict[str, Any]:
    """Return the JSON body of a client response as a plain dict.

    Accepts the client's ``ObjectApiResponse`` as well as plain mappings.
    Anything else yields an empty dict.
    """
    body = getattr(response, "body", response)
    return dict(body) if isinstance(body, Mapping) else {}


class SearchHit(BaseModel):
    """A single hit of a search response."""

    id: str = Field(description="Document identifier")
    index: str = Field(default="", description="Index the hit was found in")
    score: float | None = Field(default=None, description="Relevance score")
    source: dict[str, Any] = Field(default_factory=dict, description="Stored document")

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> SearchHit:
        return cls(
            id=str(hit.get("_id", "")),
            index=hit.get("_index", ""),
            score=hit.get("_score"),
            source=hit.get("_source") or {},
        )


class SearchResult(BaseModel):
    """Parsed search response."""

    total_hits: int = Field(default=0, description="Total number of matching documents")
    max_score: float | None = Field(default=None, description="Highest score among hits")
    took_ms: int = Field(default=0, description="Server-side execution time in ms")
    timed_out: bool = Field(default=False, description="Whether the search timed out")
    hits: list[SearchHit] = Field(default_factory=list, description="Returned hits")

    @classmethod
    def from_response(cls, response: Any) -> SearchResult:
        body = response_body(response)
        hits = body.get("hits") or {}
        total = hits.get("total", 0)
        # Older servers report a bare integer, newer ones {"value": n, "relation": ...}.
        if isinstance(total, Mapping):
            total = total.get("value", 0)
        return cls(
            total_hits=int(total or 0),
            max_score=hits.get("max_score"),
            took_ms=int(body.get("took", 0) or 0),
            timed_out=bool(body.get("timed_out", False)),
            hits=[SearchHit.from_hit(h) for h in hits.get("hits", [])],
        )

    @property
    def sources(self) -> list[dict[str, Any]]:
        """Stored documents of all hits, in ranking order."""
        return [h.source for h in self.hits]


class BulkItemError(BaseModel):
    """A single action rejected inside a bulk response."""

    doc_id: str = Field(default="", description="Identifier of the rejected document")
    status: int = Field(default=0, description="HTTP status reported for the action")
    reason: str = Field(default="", description="Error reason reported by the service")


class BulkResult(BaseModel):
    """Outcome of one bulk flush."""

    submitted: int = Field(default=0, description="Number of actions sent")
    indexed: int = Field(default=0, description="Number of actions that succeeded")
    took_ms: int = Field(default=0, description="Server-side execution time in ms")
    errors: list[BulkItemError] = Field(default_factory=list, description="Per-action failures")

    @classmethod
    def from_response(cls, response: Any, submitted: int) -> BulkResult:
        body = response_body(response)
        errors: list[BulkItemError] = []
        for item in body.get("items", []):
            for result in item.values():
                if result.get("error"):
                    error = result["error"]
                    reason = error.get("reason", str(error)) if isinstance(error, Mapping) else str(error)
                    errors.append(
                        BulkItemError(
                            doc_id=str(result.get("_id", "")),
                            status=int(result.get("status", 0)),
                            reason=reason,
                        )
                    )
        return cls(
            submitted=submitted,
            indexed=submitted - len(errors),
            took_ms=int(body.get("took", 0) or 0),
            errors=errors,
        )
