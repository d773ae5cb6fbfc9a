"""Operation result models returned by the memory engine."""

from typing import Any

from pydantic import BaseModel, Field

from .memory import Memory, ScoredMemory


class AddMemoryResult(BaseModel):
    """Result of ``MemoryEngine.add``.

    ``deduplicated`` is derived from the returned record's timestamps
    (``created_at != updated_at``), so a first-time content collision reports
    ``False``. ``existing`` is the store's explicit "returned a pre-existing
    row" signal.
    """

    id: str
    created_at: str
    updated_at: str
    tags: list[str]
    metadata: dict[str, Any]
    deduplicated: bool
    existing: bool = False

    @classmethod
    def from_memory(cls, memory: Memory, existing: bool) -> "AddMemoryResult":
        return cls(
            id=memory.id,
            created_at=memory.created_at_iso,
            updated_at=memory.updated_at_iso,
            tags=memory.tags,
            metadata=memory.metadata,
            deduplicated=memory.has_been_updated,
            existing=existing,
        )


class SearchResponse(BaseModel):
    """Result of ``MemoryEngine.search``.

    ``related`` is ``None`` unless neighbor expansion ran.
    """

    results: list[ScoredMemory] = Field(default_factory=list)
    related: list[Memory] | None = None

    def to_dict(self) -> dict[str, Any]:
        response: dict[str, Any] = {"results": [hit.to_dict() for hit in self.results]}
        if self.related is not None:
            response["related"] = [memory.to_dict() for memory in self.related]
        return response


class LinkResult(BaseModel):
    """Result of ``MemoryEngine.link``."""

    edge_id: str
    created_at: str
