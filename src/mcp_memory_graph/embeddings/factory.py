"""
Embedding provider factory.

Builds the provider selected by ``EmbeddingSettings``.
"""

import logging

from ..config import EmbeddingSettings
from ..errors import ProviderError
from .base import EmbeddingProvider
from .http_provider import HttpEmbeddingProvider
from .local_provider import SentenceTransformerProvider

logger = logging.getLogger(__name__)


def create_embedding_provider(config: EmbeddingSettings | None = None) -> EmbeddingProvider:
    """
    Create the configured embedding provider.

    Args:
        config: Embedding settings (defaults to the process-wide settings)

    Returns:
        Ready-to-use EmbeddingProvider

    Raises:
        ProviderError: If the HTTP provider is selected without an API key
    """
    if config is None:
        from ..config import settings

        config = settings.embeddings

    if config.provider == "local":
        logger.info(f"Using local sentence-transformers embeddings: {config.model} ({config.dim} dims)")
        return SentenceTransformerProvider(model=config.model, dimensions=config.dim)

    if config.api_key is None:
        raise ProviderError("EMBEDDINGS_API_KEY is required for the http embedding provider")

    logger.info(f"Using HTTP embeddings: {config.model} via {config.base_url} ({config.dim} dims)")
    return HttpEmbeddingProvider(
        base_url=config.base_url,
        api_key=config.api_key.get_secret_value(),
        model=config.model,
        dimensions=config.dim,
        timeout=config.timeout_seconds,
        batch_size=config.batch_size,
    )
