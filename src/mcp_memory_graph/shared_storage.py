#!/usr/bin/env python3
"""
Shared engine manager for the memory graph service.

Provides a process-wide MemoryEngine (store + embedding provider) that is
initialized once on first use and then shared read-only by every in-flight
request. The engine itself takes both collaborators by injection; this
module only decides which ones the server process uses.
"""

import asyncio
import logging
from threading import Lock
from typing import Optional

from .embeddings.factory import create_embedding_provider
from .services.memory_engine import MemoryEngine
from .storage.factory import create_storage_instance

logger = logging.getLogger(__name__)


class EngineManager:
    """Manages a singleton MemoryEngine instance for shared access."""

    _instance: Optional["EngineManager"] = None
    _lock: Lock = Lock()

    def __init__(self):
        self._engine: MemoryEngine | None = None
        self._initialization_lock: asyncio.Lock | None = None

    @classmethod
    def get_instance(cls) -> "EngineManager":
        """Get singleton instance of EngineManager (thread-safe)."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
                    logger.info("Created new EngineManager singleton instance")
        return cls._instance

    async def get_engine(self) -> MemoryEngine:
        """Get or create the shared engine.

        Concurrent first calls result in a single initialization.
        """
        if self._engine is not None:
            return self._engine

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            if self._engine is not None:
                return self._engine

            logger.info("Initializing shared memory engine...")
            embeddings = create_embedding_provider()
            try:
                storage = await create_storage_instance()
            except Exception:
                await embeddings.close()
                raise
            self._engine = MemoryEngine(storage, embeddings)
            logger.info(f"Shared memory engine initialized: {type(storage).__name__} + {type(embeddings).__name__}")
            return self._engine

    async def close(self) -> None:
        """Close the shared engine. Safe to call even if it was never initialized."""
        if self._engine is None:
            return
        engine = self._engine
        self._engine = None
        logger.info("Closing shared memory engine...")
        await engine.close()

    def is_initialized(self) -> bool:
        return self._engine is not None


_manager = EngineManager.get_instance()


async def get_shared_engine() -> MemoryEngine:
    """Get the shared engine via the singleton EngineManager."""
    return await _manager.get_engine()


async def close_shared_engine() -> None:
    """Close the shared engine via the singleton EngineManager."""
    await _manager.close()
