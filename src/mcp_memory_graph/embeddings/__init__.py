"""
Embedding provider adapters.

Providers turn text into fixed-dimension vectors; the engine computes every
embedding and hands plain vectors to the store.
"""

from .base import EmbeddingProvider
from .factory import create_embedding_provider
from .http_provider import HttpEmbeddingProvider
from .local_provider import SentenceTransformerProvider

__all__ = [
    "EmbeddingProvider",
    "HttpEmbeddingProvider",
    "SentenceTransformerProvider",
    "create_embedding_provider",
]
