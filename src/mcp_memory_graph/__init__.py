"""Namespaced semantic memory with deduplication, similarity search and graph links."""

from .errors import MemoryEngineError, ProviderError, StoreError, ValidationError
from .services.memory_engine import MemoryEngine

__version__ = "1.0.0"

__all__ = [
    "MemoryEngine",
    "MemoryEngineError",
    "ProviderError",
    "StoreError",
    "ValidationError",
    "__version__",
]
