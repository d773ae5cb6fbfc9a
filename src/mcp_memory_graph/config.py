"""Runtime configuration for the memory graph service.

Settings are grouped per subsystem and loaded from environment variables:

- ``EmbeddingSettings`` (``EMBEDDINGS_*``): embedding provider selection and credentials
- ``QdrantSettings`` (``MCP_QDRANT_*``): vector store location and collection layout
- ``ServerSettings`` (``MCP_SERVER_*``): MCP transport, bind address and log level

The aggregate ``settings`` object is created once at import time.
"""

import logging
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

SERVICE_NAME = "mcp-memory-graph"


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration.

    Variable names match the existing deployment manifests:
    EMBEDDINGS_BASE_URL, EMBEDDINGS_API_KEY, EMBEDDINGS_MODEL, EMBEDDINGS_DIM.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDINGS_", extra="ignore")

    provider: Literal["http", "local"] = "http"
    base_url: str = "https://openrouter.ai/api/v1"
    api_key: SecretStr | None = None
    model: str = "openai/text-embedding-3-small"
    dim: int = Field(default=1536, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    batch_size: int = Field(default=64, ge=1, le=2048)


class QdrantSettings(BaseSettings):
    """Qdrant connection and collection settings.

    ``url`` selects server mode (or ``":memory:"`` for an in-process store);
    otherwise ``storage_path`` selects embedded on-disk mode.
    """

    model_config = SettingsConfigDict(env_prefix="MCP_QDRANT_", extra="ignore")

    url: str | None = None
    storage_path: str | None = None
    api_key: SecretStr | None = None
    collection_name: str = Field(default="memories", min_length=1)

    # Extra candidates fetched so recency tie-breaks are applied before truncation
    search_overfetch: int = Field(default=16, ge=0, le=1000)

    hnsw_m: int = Field(default=16, ge=4)
    hnsw_ef_construct: int = Field(default=100, ge=4)


class ServerSettings(BaseSettings):
    """MCP server transport settings."""

    model_config = SettingsConfigDict(env_prefix="MCP_SERVER_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=8001, ge=1, le=65535)
    transport: Literal["http", "stdio"] = "http"
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Aggregate settings for all subsystems."""

    model_config = SettingsConfigDict(extra="ignore")

    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    def validate_runtime(self) -> list[str]:
        """Return the names of required settings that are missing.

        An empty list means the service can start.
        """
        missing = []
        if self.embeddings.provider == "http":
            if not self.embeddings.base_url:
                missing.append("EMBEDDINGS_BASE_URL")
            if self.embeddings.api_key is None or not self.embeddings.api_key.get_secret_value():
                missing.append("EMBEDDINGS_API_KEY")
            if not self.embeddings.model:
                missing.append("EMBEDDINGS_MODEL")
        if not self.qdrant.url and not self.qdrant.storage_path:
            missing.append("MCP_QDRANT_URL or MCP_QDRANT_STORAGE_PATH")
        return missing


settings = Settings()
