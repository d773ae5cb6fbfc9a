"""OpenAI-compatible HTTP embedding provider.

Talks to any ``POST {base_url}/embeddings`` endpoint that follows the OpenAI
response shape (OpenRouter, OpenAI, vLLM, LiteLLM proxies ...):

    {"data": [{"index": 0, "embedding": [...]}, ...]}

Long inputs lists are sent in chunks of ``batch_size``. Any transport error,
non-2xx status or malformed body raises ``ProviderError``; nothing is retried.
"""

import logging
from typing import Any

import httpx

from ..errors import ProviderError
from .base import EmbeddingProvider

logger = logging.getLogger(__name__)


class HttpEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        dimensions: int,
        timeout: float = 30.0,
        batch_size: int = 64,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(model=model, dimensions=dimensions)
        self.base_url = base_url.rstrip("/")
        self.batch_size = batch_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/embeddings"

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            chunk = texts[start : start + self.batch_size]
            vectors.extend(await self._request(chunk))
        return vectors

    async def _request(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.post(
                self.endpoint,
                headers=self._headers,
                json={"model": self.model, "input": texts},
            )
        except httpx.HTTPError as e:
            logger.error(f"Embedding request to {self.endpoint} failed: {e.__class__.__name__}: {e}")
            raise ProviderError(f"Embedding request failed: {e.__class__.__name__}: {e}") from e

        if response.status_code // 100 != 2:
            body = response.text[:200]
            logger.error(f"Embedding provider returned HTTP {response.status_code}: {body}")
            raise ProviderError(
                f"Embedding provider returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Embedding provider returned invalid JSON: {e}") from e

        return self._parse(payload, expected=len(texts))

    @staticmethod
    def _parse(payload: Any, expected: int) -> list[list[float]]:
        """Extract vectors from an OpenAI-shaped body, ordered by ``index``."""
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or len(data) != expected:
            got = len(data) if isinstance(data, list) else "no"
            raise ProviderError(f"Embedding provider returned {got} vectors for {expected} inputs")

        try:
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            return [item["embedding"] for item in ordered]
        except (AttributeError, KeyError, TypeError) as e:
            raise ProviderError(f"Malformed embedding response: {e}") from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def describe(self) -> dict[str, object]:
        return {**super().describe(), "base_url": self.base_url}
