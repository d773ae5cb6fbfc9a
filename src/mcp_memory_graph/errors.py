"""Error taxonomy for the memory engine.

Every failure surfaced by the engine is one of three kinds:

- ``ValidationError``: malformed or out-of-range input, detected before any
  external call is made.
- ``ProviderError``: the embedding provider failed or returned an unexpected shape.
- ``StoreError``: the persistent store failed.

All three derive from ``MemoryEngineError`` and propagate to the caller unchanged.
"""


class MemoryEngineError(Exception):
    """Base class for memory engine errors."""

    kind = "MemoryEngineError"

    def to_dict(self) -> dict[str, str]:
        return {"error": f"{self.kind}: {self}"}


class ValidationError(MemoryEngineError):
    """Input rejected before reaching the embedding provider or the store."""

    kind = "ValidationError"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ProviderError(MemoryEngineError):
    """Embedding provider failure (transport, HTTP status, or response shape)."""

    kind = "ProviderError"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(MemoryEngineError):
    """Persistent store failure (connectivity, constraint violation, timeout)."""

    kind = "StoreError"
