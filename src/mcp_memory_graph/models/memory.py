"""Memory and edge data models.

Pydantic v2 models for the records owned by the memory store. Timestamps
are stored as unix seconds (float) and rendered as ISO-8601 strings (UTC,
Z-suffix) in API responses.
"""

import math
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .validators import DEFAULT_SOURCE_TYPE, MemoryId, Namespace, NonEmptyText, RelationType, Tags, UnitFloat


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------


def float_to_iso(ts: float) -> str:
    """Convert float timestamp to ISO string (UTC, Z-suffix)."""
    return datetime.fromtimestamp(ts, timezone.utc).isoformat().replace("+00:00", "Z")


def _safe_float(v: Any, default: float = 0.0) -> float:
    """Convert *v* to float, returning *default* on failure or non-finite values."""
    try:
        result = float(v)
        return result if math.isfinite(result) else default
    except (TypeError, ValueError):
        return default


def _required_timestamp(payload: dict[str, Any], key: str) -> float:
    """Read a stored timestamp; a missing or non-finite value means the row is corrupt."""
    value = _safe_float(payload.get(key), default=math.nan)
    if math.isnan(value):
        raise ValueError(f"stored record has no valid {key}: {payload.get(key)!r}")
    return value


# ---------------------------------------------------------------------------
# Memory model
# ---------------------------------------------------------------------------


class Memory(BaseModel):
    """A single namespaced text memory.

    ``created_at == updated_at`` until the record is re-saved through the
    explicit refresh path; the engine derives its ``deduplicated`` flag from it.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: MemoryId
    namespace: Namespace
    content: NonEmptyText
    title: str | None = None
    tags: Tags = []
    source_type: str = DEFAULT_SOURCE_TYPE
    source_id: str | None = None
    source_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    created_at: float
    updated_at: float

    @property
    def created_at_iso(self) -> str:
        return float_to_iso(self.created_at)

    @property
    def updated_at_iso(self) -> str:
        return float_to_iso(self.updated_at)

    @property
    def has_been_updated(self) -> bool:
        """True once the record has been re-saved after creation."""
        return self.created_at != self.updated_at

    def to_payload(self, content_hash: str) -> dict[str, Any]:
        """Convert to the payload stored alongside the vector."""
        return {
            "namespace": self.namespace,
            "content": self.content,
            "content_hash": content_hash,
            "title": self.title,
            "tags": self.tags,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "source_url": self.source_url,
            "metadata": self.metadata,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_payload(cls, point_id: Any, payload: dict[str, Any]) -> "Memory":
        """Create a Memory from a stored payload.

        Missing ``updated_at`` falls back to ``created_at`` so that legacy
        rows never look as if they had been updated. A row without a valid
        ``created_at`` (or without namespace/content) is rejected rather than
        given an invented timestamp.
        """
        created_at = _required_timestamp(payload, "created_at")
        updated_at = _safe_float(payload.get("updated_at"), default=created_at)
        return cls(
            id=str(point_id),
            namespace=payload["namespace"],
            content=payload["content"],
            title=payload.get("title"),
            tags=payload.get("tags") or [],
            source_type=payload.get("source_type") or DEFAULT_SOURCE_TYPE,
            source_id=payload.get("source_id"),
            source_url=payload.get("source_url"),
            metadata=payload.get("metadata") or {},
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to an API response dictionary (no embedding)."""
        return {
            "id": self.id,
            "namespace": self.namespace,
            "content": self.content,
            "title": self.title,
            "tags": self.tags,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "source_url": self.source_url,
            "metadata": self.metadata,
            "created_at": self.created_at_iso,
            "updated_at": self.updated_at_iso,
        }


class ScoredMemory(BaseModel):
    """Search hit: a memory plus its normalised cosine similarity."""

    memory: Memory
    score: UnitFloat

    def to_dict(self) -> dict[str, Any]:
        return {**self.memory.to_dict(), "score": self.score}


# ---------------------------------------------------------------------------
# Edge model
# ---------------------------------------------------------------------------


class Edge(BaseModel):
    """Directed, typed relationship between two memories of one namespace."""

    id: MemoryId
    namespace: Namespace
    from_id: MemoryId
    to_id: MemoryId
    rel_type: RelationType
    weight: UnitFloat = 1.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "rel_type": self.rel_type,
            "weight": self.weight,
            "metadata": self.metadata,
            "created_at": self.created_at,
        }

    @classmethod
    def from_payload(cls, point_id: Any, payload: dict[str, Any]) -> "Edge":
        return cls(
            id=str(point_id),
            namespace=payload["namespace"],
            from_id=payload["from_id"],
            to_id=payload["to_id"],
            rel_type=payload["rel_type"],
            weight=_safe_float(payload.get("weight"), default=1.0),
            metadata=payload.get("metadata") or {},
            created_at=_required_timestamp(payload, "created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "namespace": self.namespace,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "rel_type": self.rel_type,
            "weight": self.weight,
            "metadata": self.metadata,
            "created_at": float_to_iso(self.created_at),
        }
