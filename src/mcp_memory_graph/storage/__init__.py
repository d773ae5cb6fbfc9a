"""Memory store backends."""

from .base import CreateResult, MemoryStore, NewEdge, NewMemory, SearchFilters
from .factory import create_storage_instance
from .qdrant_storage import QdrantMemoryStore

__all__ = [
    "CreateResult",
    "MemoryStore",
    "NewEdge",
    "NewMemory",
    "QdrantMemoryStore",
    "SearchFilters",
    "create_storage_instance",
]
