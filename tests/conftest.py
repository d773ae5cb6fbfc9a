import hashlib
import os
import random
import sys

import pytest

# Force tests to use in-memory Qdrant so no server or on-disk lock is needed
if "MCP_QDRANT_URL" not in os.environ and "MCP_QDRANT_STORAGE_PATH" not in os.environ:
    os.environ["MCP_QDRANT_URL"] = ":memory:"

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from mcp_memory_graph.embeddings.base import EmbeddingProvider  # noqa: E402
from mcp_memory_graph.services.memory_engine import MemoryEngine  # noqa: E402
from mcp_memory_graph.storage.qdrant_storage import QdrantMemoryStore  # noqa: E402

VECTOR_SIZE = 8


def deterministic_embedding(text: str, vector_size: int = VECTOR_SIZE) -> list[float]:
    """Create a deterministic embedding from the text hash."""
    seed = int(hashlib.sha256(text.encode()).hexdigest(), 16) % (2**32)
    rng = random.Random(seed)
    return [rng.random() * 2 - 1 for _ in range(vector_size)]


class FakeEmbeddingProvider(EmbeddingProvider):
    """Offline provider: pinned vectors for known texts, hash-seeded vectors otherwise."""

    def __init__(self, dimensions: int = VECTOR_SIZE, vectors: dict[str, list[float]] | None = None):
        super().__init__(model="fake-embedding", dimensions=dimensions)
        self.vectors = dict(vectors or {})
        self.calls: list[list[str]] = []

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vectors.get(t) or deterministic_embedding(t, self.dimensions) for t in texts]


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddingProvider()


@pytest.fixture
async def qdrant_store():
    """Fresh in-process Qdrant store per test."""
    store = QdrantMemoryStore(vector_size=VECTOR_SIZE, collection_name="test_memories", url=":memory:")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def engine(qdrant_store, fake_embeddings):
    return MemoryEngine(qdrant_store, fake_embeddings)
