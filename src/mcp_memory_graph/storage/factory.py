# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Storage backend factory for the memory graph service.

Creates and initializes the Qdrant memory store.
"""

import logging

from ..config import Settings
from .base import MemoryStore
from .qdrant_storage import QdrantMemoryStore

logger = logging.getLogger(__name__)


async def create_storage_instance(config: Settings | None = None) -> MemoryStore:
    """
    Create and initialize the Qdrant memory store.

    The vector size follows the configured embedding dimension so the store
    and the provider always agree.

    Args:
        config: Settings to use (defaults to the process-wide settings)

    Returns:
        Initialized QdrantMemoryStore instance
    """
    if config is None:
        from ..config import settings

        config = settings

    qdrant = config.qdrant
    logger.info("Creating Qdrant memory store instance...")

    storage = QdrantMemoryStore(
        vector_size=config.embeddings.dim,
        collection_name=qdrant.collection_name,
        url=qdrant.url,
        storage_path=None if qdrant.url else qdrant.storage_path,
        api_key=qdrant.api_key.get_secret_value() if qdrant.api_key else None,
        search_overfetch=qdrant.search_overfetch,
        hnsw_m=qdrant.hnsw_m,
        hnsw_ef_construct=qdrant.hnsw_ef_construct,
    )

    await storage.initialize()
    logger.info(f"QdrantMemoryStore initialized successfully ({storage.mode} mode)")

    return storage
