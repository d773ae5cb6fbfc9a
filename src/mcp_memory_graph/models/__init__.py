"""Data models for the memory graph service."""

from .inputs import AddMemoryParams, GetMemoryParams, LinkParams, NeighborParams, RefreshParams, SearchParams
from .memory import Edge, Memory, ScoredMemory
from .responses import AddMemoryResult, LinkResult, SearchResponse

__all__ = [
    "AddMemoryParams",
    "AddMemoryResult",
    "Edge",
    "GetMemoryParams",
    "LinkParams",
    "LinkResult",
    "Memory",
    "NeighborParams",
    "RefreshParams",
    "ScoredMemory",
    "SearchParams",
    "SearchResponse",
]
