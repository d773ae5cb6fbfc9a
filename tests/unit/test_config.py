"""
Unit tests for service configuration.

Validates defaults, env var loading, SecretStr handling and startup checks.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from mcp_memory_graph.config import EmbeddingSettings, QdrantSettings, ServerSettings, Settings


class TestEmbeddingSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = EmbeddingSettings()

        assert cfg.provider == "http"
        assert cfg.api_key is None
        assert cfg.dim == 1536
        assert cfg.timeout_seconds == 30.0
        assert cfg.batch_size == 64

    def test_env_override(self):
        env = {
            "EMBEDDINGS_BASE_URL": "http://embedder:8080/v1",
            "EMBEDDINGS_API_KEY": "sk-test",
            "EMBEDDINGS_MODEL": "nomic-embed-text",
            "EMBEDDINGS_DIM": "768",
            "EMBEDDINGS_PROVIDER": "local",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = EmbeddingSettings()

        assert cfg.base_url == "http://embedder:8080/v1"
        assert cfg.model == "nomic-embed-text"
        assert cfg.dim == 768
        assert cfg.provider == "local"

    def test_api_key_is_secret(self):
        with patch.dict(os.environ, {"EMBEDDINGS_API_KEY": "sk-hidden"}, clear=True):
            cfg = EmbeddingSettings()

        assert cfg.api_key.get_secret_value() == "sk-hidden"
        assert "sk-hidden" not in repr(cfg)

    def test_invalid_dim_rejected(self):
        with patch.dict(os.environ, {"EMBEDDINGS_DIM": "0"}, clear=True):
            with pytest.raises(ValidationError):
                EmbeddingSettings()

    def test_unknown_provider_rejected(self):
        with patch.dict(os.environ, {"EMBEDDINGS_PROVIDER": "grpc"}, clear=True):
            with pytest.raises(ValidationError):
                EmbeddingSettings()


class TestQdrantSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = QdrantSettings()

        assert cfg.url is None
        assert cfg.storage_path is None
        assert cfg.collection_name == "memories"
        assert cfg.search_overfetch == 16

    def test_env_override(self):
        env = {
            "MCP_QDRANT_URL": "http://qdrant:6333",
            "MCP_QDRANT_API_KEY": "qd-key",
            "MCP_QDRANT_COLLECTION_NAME": "team_memories",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = QdrantSettings()

        assert cfg.url == "http://qdrant:6333"
        assert cfg.api_key.get_secret_value() == "qd-key"
        assert cfg.collection_name == "team_memories"


class TestServerSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = ServerSettings()

        assert cfg.port == 8001
        assert cfg.transport == "http"

    def test_env_override(self):
        with patch.dict(os.environ, {"MCP_SERVER_PORT": "9000", "MCP_SERVER_TRANSPORT": "stdio"}, clear=True):
            cfg = ServerSettings()

        assert cfg.port == 9000
        assert cfg.transport == "stdio"

    def test_port_out_of_range(self):
        with patch.dict(os.environ, {"MCP_SERVER_PORT": "70000"}, clear=True):
            with pytest.raises(ValidationError):
                ServerSettings()


class TestValidateRuntime:
    def _settings(self, env: dict[str, str]) -> Settings:
        with patch.dict(os.environ, env, clear=True):
            return Settings()

    def test_complete_http_config(self):
        cfg = self._settings({"EMBEDDINGS_API_KEY": "sk-test", "MCP_QDRANT_URL": ":memory:"})
        assert cfg.validate_runtime() == []

    def test_missing_api_key(self):
        cfg = self._settings({"MCP_QDRANT_URL": ":memory:"})
        assert cfg.validate_runtime() == ["EMBEDDINGS_API_KEY"]

    def test_empty_model_reported(self):
        cfg = self._settings({"EMBEDDINGS_API_KEY": "sk", "EMBEDDINGS_MODEL": "", "MCP_QDRANT_URL": ":memory:"})
        assert cfg.validate_runtime() == ["EMBEDDINGS_MODEL"]

    def test_missing_store_location(self):
        cfg = self._settings({"EMBEDDINGS_API_KEY": "sk-test"})
        assert cfg.validate_runtime() == ["MCP_QDRANT_URL or MCP_QDRANT_STORAGE_PATH"]

    def test_local_provider_needs_no_api_key(self):
        cfg = self._settings({"EMBEDDINGS_PROVIDER": "local", "MCP_QDRANT_STORAGE_PATH": "/tmp/qdrant"})
        assert cfg.validate_runtime() == []
