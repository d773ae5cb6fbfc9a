"""Local sentence-transformers embedding provider.

Runs the model in-process. The model is loaded lazily on first use behind a
lock so concurrent requests never load it twice; inference runs in the
default executor to keep the event loop free.
"""

import asyncio
import logging
import threading

from ..errors import ProviderError
from .base import EmbeddingProvider

logger = logging.getLogger(__name__)


class SentenceTransformerProvider(EmbeddingProvider):
    """Embedding provider using a local sentence-transformers model."""

    def __init__(self, model: str, dimensions: int, device: str | None = None):
        super().__init__(model=model, dimensions=dimensions)
        self.device = device
        self._model = None
        self._model_lock = threading.Lock()

    def _load_model(self):
        # Double-checked so concurrent first calls load the model once
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer

                    logger.info(f"Loading embedding model: {self.model}")
                    self._model = SentenceTransformer(self.model, device=self.device, trust_remote_code=True)
                    logger.info(f"Loaded model: {self.model}")
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._load_model()
        embeddings = model.encode(texts, convert_to_tensor=False)
        return [e.tolist() if hasattr(e, "tolist") else list(e) for e in embeddings]

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._encode, texts)
        except ImportError as e:
            raise ProviderError(
                "sentence_transformers not installed. Install with: pip install 'mcp-memory-graph[local]'"
            ) from e
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e.__class__.__name__}: {e}")
            raise ProviderError(f"Local embedding failed: {e.__class__.__name__}: {e}") from e
