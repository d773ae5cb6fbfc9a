"""
Embedding provider interface.

A provider maps a batch of texts to one fixed-dimension vector per text,
order-preserving. Implementations must raise ``ProviderError`` on any
failure instead of returning placeholder vectors.
"""

from abc import ABC, abstractmethod

import numpy as np

from ..errors import ProviderError


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    def __init__(self, model: str, dimensions: int):
        self.model = model
        self.dimensions = dimensions

    @abstractmethod
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed one batch of texts (already validated non-empty)."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts, one vector per input, in input order.

        Args:
            texts: Texts to embed

        Returns:
            List of float vectors of length ``self.dimensions``

        Raises:
            ProviderError: If the provider fails or returns an unexpected shape
        """
        if not texts:
            return []
        vectors = await self._embed_batch(list(texts))
        return self.validate_vectors(vectors, expected_count=len(texts))

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (single-item batch)."""
        return (await self.embed([text]))[0]

    def validate_vectors(self, vectors: object, expected_count: int) -> list[list[float]]:
        """Check count, dimension and finiteness of a provider response."""
        try:
            matrix = np.asarray(vectors, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Embedding response is not a numeric matrix: {e}") from e

        if matrix.ndim != 2 or matrix.shape[0] != expected_count:
            raise ProviderError(
                f"Embedding provider returned shape {matrix.shape}, expected ({expected_count}, {self.dimensions})"
            )
        if matrix.shape[1] != self.dimensions:
            raise ProviderError(
                f"Embedding dimension mismatch: expected {self.dimensions}, got {matrix.shape[1]} "
                f"(model {self.model})"
            )
        if not np.isfinite(matrix).all():
            raise ProviderError("Embedding provider returned non-finite values")

        return matrix.tolist()

    async def close(self) -> None:
        """Release provider resources (no-op by default)."""

    def describe(self) -> dict[str, object]:
        return {"provider": type(self).__name__, "model": self.model, "dimensions": self.dimensions}
