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
Qdrant storage backend for the memory graph service.

Memories are points in ``<collection>`` (one cosine vector each); edges are
points in ``<collection>_edges`` carrying a 1-dimensional placeholder vector.
All blocking client calls run in the default executor and every client
failure is re-raised as ``StoreError``. Nothing is retried.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    HnswConfigDiff,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from ..errors import StoreError
from ..models.memory import Edge, Memory, ScoredMemory
from ..utils.hashing import generate_content_hash
from .base import CreateResult, MemoryStore, NewEdge, NewMemory, SearchFilters

logger = logging.getLogger(__name__)

T = TypeVar("T")

IN_MEMORY_LOCATION = ":memory:"

# Placeholder vector for edge points (edges are payload-only records)
_EDGE_VECTOR = [1.0]

_KEYWORD_INDEXES = ("namespace", "content_hash", "tags", "source_type")
_EDGE_KEYWORD_INDEXES = ("namespace", "from_id", "to_id")

# Rows fetched per scroll page and upper bound on dedup candidates
_SCROLL_PAGE_SIZE = 256
_DEDUP_CANDIDATES = 64


def normalize_cosine(score: float) -> float:
    """Map a cosine similarity in [-1, 1] onto [0, 1], preserving order."""
    return min(1.0, max(0.0, (1.0 + float(score)) / 2.0))


def _is_point_id(value: str) -> bool:
    """Qdrant point ids are UUIDs; anything else cannot exist in the store."""
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def _namespace_condition(namespace: str) -> FieldCondition:
    return FieldCondition(key="namespace", match=MatchValue(value=namespace))


class QdrantMemoryStore(MemoryStore):
    """
    Qdrant memory store in server, embedded (on-disk) or in-memory mode.

    Verifies on startup that an existing collection matches the configured
    vector size, so a changed embedding model fails loudly instead of
    silently mixing incompatible vectors.
    """

    def __init__(
        self,
        vector_size: int,
        collection_name: str = "memories",
        storage_path: str | None = None,
        url: str | None = None,
        api_key: str | None = None,
        search_overfetch: int = 16,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
    ):
        """
        Initialize the Qdrant store.

        Args:
            vector_size: Embedding dimension of the memories collection
            collection_name: Memories collection name (edges use ``<name>_edges``)
            storage_path: Path to Qdrant storage directory (embedded mode)
            url: Qdrant server URL (server mode), or ":memory:" for an in-process store
            api_key: Optional Qdrant server API key
            search_overfetch: Extra candidates fetched before the recency tie-break
            hnsw_m: HNSW graph degree for new collections
            hnsw_ef_construct: HNSW construction beam width for new collections

        Note:
            If url is provided, uses network client mode (multi-process safe).
            Otherwise uses embedded mode (single-process only, file locking).
        """
        if url and storage_path:
            raise ValueError("Cannot specify both url and storage_path. Choose embedded OR server mode.")
        if not url and not storage_path:
            raise ValueError("Must specify either url (server mode) or storage_path (embedded mode).")

        self.url = url
        self.storage_path = storage_path
        self.api_key = api_key
        self.vector_size = vector_size
        self.collection_name = collection_name
        self.edge_collection_name = f"{collection_name}_edges"
        self.search_overfetch = search_overfetch
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct

        self.client: QdrantClient | None = None
        self._initialized = False

        logger.info(
            f"Initializing QdrantMemoryStore: mode={self.mode}, location={self.location}, "
            f"collection={collection_name}, vector_size={vector_size}"
        )

    @property
    def mode(self) -> str:
        if self.url == IN_MEMORY_LOCATION:
            return "memory"
        return "server" if self.url else "embedded"

    @property
    def location(self) -> str:
        # Never log credentials embedded in the URL
        if self.url and "@" in self.url:
            scheme, _, rest = self.url.partition("://")
            return f"{scheme}://{rest.split('@', 1)[1]}"
        return self.url or self.storage_path or ""

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        """Run a blocking client call in the executor, converting failures to StoreError.

        Callers convert payloads to records inside ``func`` so a corrupt stored
        row also surfaces as ``StoreError``.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Qdrant {operation} failed: {e.__class__.__name__}: {e}")
            raise StoreError(f"{operation} failed: {e.__class__.__name__}: {e}") from e

    def _require_client(self) -> QdrantClient:
        if self.client is None:
            raise StoreError("QdrantMemoryStore not initialized. Call initialize() first.")
        return self.client

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect, then create or verify both collections and their payload indexes."""
        if self._initialized:
            logger.debug("QdrantMemoryStore already initialized")
            return

        if self.mode == "memory":
            self.client = await self._run("connect", lambda: QdrantClient(location=IN_MEMORY_LOCATION))
        elif self.mode == "server":
            self.client = await self._run("connect", lambda: QdrantClient(url=self.url, api_key=self.api_key))
        else:
            self.client = await self._run("connect", lambda: QdrantClient(path=self.storage_path))
        logger.info(f"Qdrant client ready ({self.mode} mode): {self.location}")

        existing = await self._collection_names()

        if self.collection_name in existing:
            await self._verify_vector_size()
        else:
            await self._create_memory_collection()

        if self.edge_collection_name not in existing:
            await self._create_edge_collection()

        await self._ensure_payload_indexes()

        self._initialized = True
        logger.info("QdrantMemoryStore initialization complete")

    async def _collection_names(self) -> set[str]:
        client = self._require_client()
        collections = await self._run("list collections", client.get_collections)
        return {col.name for col in collections.collections}

    async def _verify_vector_size(self) -> None:
        """Fail if the stored collection was built for a different embedding dimension."""
        client = self._require_client()
        info = await self._run("get collection", lambda: client.get_collection(self.collection_name))
        stored_size = info.config.params.vectors.size
        if stored_size != self.vector_size:
            raise StoreError(
                f"Collection '{self.collection_name}' vector size ({stored_size}) doesn't match "
                f"configured embedding dimensions ({self.vector_size}). "
                f"The embedding model changed; re-embed into a new collection."
            )
        logger.info(f"Collection '{self.collection_name}' verified (vector size {stored_size})")

    async def _create_memory_collection(self) -> None:
        client = self._require_client()
        await self._run(
            "create collection",
            lambda: client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
                hnsw_config=HnswConfigDiff(m=self.hnsw_m, ef_construct=self.hnsw_ef_construct),
            ),
        )
        logger.info(f"Created collection '{self.collection_name}' with vector size {self.vector_size}")

    async def _create_edge_collection(self) -> None:
        client = self._require_client()
        await self._run(
            "create edge collection",
            lambda: client.create_collection(
                collection_name=self.edge_collection_name,
                vectors_config=VectorParams(size=len(_EDGE_VECTOR), distance=Distance.DOT),
            ),
        )
        logger.info(f"Created edge collection '{self.edge_collection_name}'")

    async def _ensure_payload_indexes(self) -> None:
        """
        Ensure filter indexes exist.

        Idempotent: Qdrant ignores create_payload_index for an index that
        already exists with the same schema.
        """
        client = self._require_client()
        indexes = [(self.collection_name, name, PayloadSchemaType.KEYWORD) for name in _KEYWORD_INDEXES]
        indexes.append((self.collection_name, "created_at", PayloadSchemaType.FLOAT))
        indexes.extend((self.edge_collection_name, name, PayloadSchemaType.KEYWORD) for name in _EDGE_KEYWORD_INDEXES)

        for collection, field_name, schema in indexes:
            await self._run(
                "create payload index",
                lambda c=collection, f=field_name, s=schema: client.create_payload_index(
                    collection_name=c, field_name=f, field_schema=s
                ),
            )
        logger.debug(f"Ensured {len(indexes)} payload indexes")

    async def close(self) -> None:
        if self.client is not None:
            client = self.client
            self.client = None
            self._initialized = False
            await self._run("close", client.close)
            logger.info("Qdrant client closed")

    # ------------------------------------------------------------------
    # Memories
    # ------------------------------------------------------------------

    async def create_memory(self, record: NewMemory, embedding: list[float], dedupe: bool = True) -> CreateResult:
        client = self._require_client()

        if len(embedding) != self.vector_size:
            raise StoreError(
                f"Embedding dimension mismatch: expected {self.vector_size}, got {len(embedding)}. "
                f"This indicates a configuration error or model version change."
            )

        content_hash = generate_content_hash(record.namespace, record.content)

        if dedupe:
            existing = await self._find_by_content(record.namespace, record.content, content_hash)
            if existing is not None:
                logger.debug(f"Dedup hit in '{record.namespace}': {existing.id}")
                return CreateResult(memory=existing, existing=True)

        now = time.time()
        memory = Memory(
            id=str(uuid.uuid4()),
            namespace=record.namespace,
            content=record.content,
            title=record.title,
            tags=record.tags,
            source_type=record.source_type,
            source_id=record.source_id,
            source_url=record.source_url,
            metadata=record.metadata,
            created_at=now,
            updated_at=now,
        )
        point = PointStruct(id=memory.id, vector=embedding, payload=memory.to_payload(content_hash))

        await self._run(
            "upsert memory",
            lambda: client.upsert(collection_name=self.collection_name, points=[point], wait=True),
        )
        logger.info(f"Stored memory {memory.id} in namespace '{memory.namespace}'")
        return CreateResult(memory=memory, existing=False)

    async def _find_by_content(self, namespace: str, content: str, content_hash: str) -> Memory | None:
        """Oldest memory of the namespace whose content equals ``content`` exactly."""
        client = self._require_client()

        def _lookup() -> list[Memory]:
            records, _ = client.scroll(
                collection_name=self.collection_name,
                scroll_filter=Filter(
                    must=[
                        _namespace_condition(namespace),
                        FieldCondition(key="content_hash", match=MatchValue(value=content_hash)),
                    ]
                ),
                limit=_DEDUP_CANDIDATES,
                with_payload=True,
                with_vectors=False,
            )
            return [
                Memory.from_payload(r.id, r.payload)
                for r in records
                if r.payload.get("namespace") == namespace and r.payload.get("content") == content
            ]

        matches = await self._run("dedup lookup", _lookup)
        if not matches:
            return None
        return min(matches, key=lambda m: (m.created_at, m.id))

    async def get_memory(self, namespace: str, memory_id: str) -> Memory | None:
        memories = await self.get_memories_batch(namespace, [memory_id])
        return memories[0] if memories else None

    async def get_memories_batch(self, namespace: str, memory_ids: list[str]) -> list[Memory]:
        client = self._require_client()
        ids = [mid for mid in dict.fromkeys(memory_ids) if _is_point_id(mid)]
        if not ids:
            return []

        def _retrieve() -> dict[str, Memory]:
            records = client.retrieve(
                collection_name=self.collection_name,
                ids=ids,
                with_payload=True,
                with_vectors=False,
            )
            return {
                str(r.id): Memory.from_payload(r.id, r.payload)
                for r in records
                if r.payload.get("namespace") == namespace
            }

        by_id = await self._run("retrieve memories", _retrieve)
        # Qdrant normalises UUID text; look up by the canonical form
        return [by_id[key] for key in (str(uuid.UUID(mid)) for mid in ids) if key in by_id]

    async def search_similar(
        self,
        namespace: str,
        embedding: list[float],
        filters: SearchFilters,
        top_k: int,
    ) -> list[ScoredMemory]:
        """
        Rank by cosine similarity, then break ties by newer ``created_at`` and id.

        The tie-break is applied to the ``top_k + search_overfetch`` candidates
        Qdrant returns. If more memories than that share exactly the same score,
        which of them reach the candidate set depends on Qdrant's own ordering.
        """
        client = self._require_client()

        must: list[FieldCondition] = [_namespace_condition(namespace)]
        if filters.tags:
            # MatchAny on an array field: at least one tag in common
            must.append(FieldCondition(key="tags", match=MatchAny(any=filters.tags)))
        if filters.source_types:
            must.append(FieldCondition(key="source_type", match=MatchAny(any=filters.source_types)))
        if filters.date_from is not None or filters.date_to is not None:
            must.append(FieldCondition(key="created_at", range=Range(gte=filters.date_from, lte=filters.date_to)))

        def _query() -> list[ScoredMemory]:
            response = client.query_points(
                collection_name=self.collection_name,
                query=embedding,
                query_filter=Filter(must=must),
                limit=top_k + self.search_overfetch,
                with_payload=True,
                with_vectors=False,
            )
            return [
                ScoredMemory(memory=Memory.from_payload(point.id, point.payload), score=normalize_cosine(point.score))
                for point in response.points
            ]

        hits = await self._run("similarity search", _query)
        hits.sort(key=lambda hit: (-hit.score, -hit.memory.created_at, hit.memory.id))
        logger.debug(f"Similarity search in '{namespace}': {len(hits)} candidates, returning {min(top_k, len(hits))}")
        return hits[:top_k]

    async def refresh_memory(
        self, namespace: str, memory_id: str, metadata: dict[str, Any] | None = None
    ) -> Memory | None:
        client = self._require_client()
        memory = await self.get_memory(namespace, memory_id)
        if memory is None:
            return None

        merged = {**memory.metadata, **(metadata or {})}
        # updated_at must move even when the clock has not advanced
        updated_at = max(time.time(), memory.updated_at + 1e-6)

        await self._run(
            "refresh memory",
            lambda: client.set_payload(
                collection_name=self.collection_name,
                payload={"metadata": merged, "updated_at": updated_at},
                points=[memory.id],
                wait=True,
            ),
        )
        logger.info(f"Refreshed memory {memory.id} in namespace '{namespace}'")
        return memory.model_copy(update={"metadata": merged, "updated_at": updated_at})

    async def count_memories(self, namespace: str | None = None) -> int:
        client = self._require_client()
        count_filter = Filter(must=[_namespace_condition(namespace)]) if namespace else None
        result = await self._run(
            "count memories",
            lambda: client.count(collection_name=self.collection_name, count_filter=count_filter, exact=True),
        )
        return result.count

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    async def insert_edge(self, record: NewEdge) -> Edge:
        client = self._require_client()
        edge = Edge(
            id=str(uuid.uuid4()),
            namespace=record.namespace,
            from_id=record.from_id,
            to_id=record.to_id,
            rel_type=record.rel_type,
            weight=record.weight,
            metadata=record.metadata,
            created_at=time.time(),
        )
        point = PointStruct(id=edge.id, vector=_EDGE_VECTOR, payload=edge.to_payload())

        await self._run(
            "insert edge",
            lambda: client.upsert(collection_name=self.edge_collection_name, points=[point], wait=True),
        )
        logger.info(f"Linked {edge.from_id} -[{edge.rel_type}]-> {edge.to_id} in namespace '{edge.namespace}'")
        return edge

    async def get_edges_adjacent_to(self, namespace: str, memory_ids: list[str]) -> list[Edge]:
        client = self._require_client()
        ids = list(dict.fromkeys(memory_ids))
        if not ids:
            return []

        scroll_filter = Filter(
            must=[_namespace_condition(namespace)],
            should=[
                FieldCondition(key="from_id", match=MatchAny(any=ids)),
                FieldCondition(key="to_id", match=MatchAny(any=ids)),
            ],
        )

        def _scroll_all() -> list[Edge]:
            edges: list[Edge] = []
            offset = None
            while True:
                page, offset = client.scroll(
                    collection_name=self.edge_collection_name,
                    scroll_filter=scroll_filter,
                    limit=_SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                edges.extend(
                    Edge.from_payload(r.id, r.payload) for r in page if r.payload.get("namespace") == namespace
                )
                if offset is None:
                    return edges

        edges = await self._run("adjacent edges", _scroll_all)
        # Stable traversal order regardless of backend scroll order
        edges.sort(key=lambda e: (e.created_at, e.id))
        return edges

    async def count_edges(self, namespace: str | None = None) -> int:
        client = self._require_client()
        count_filter = Filter(must=[_namespace_condition(namespace)]) if namespace else None
        result = await self._run(
            "count edges",
            lambda: client.count(collection_name=self.edge_collection_name, count_filter=count_filter, exact=True),
        )
        return result.count

    async def get_stats(self) -> dict[str, Any]:
        return {
            "backend": "qdrant",
            "mode": self.mode,
            "collection": self.collection_name,
            "vector_size": self.vector_size,
            "memories": await self.count_memories(),
            "edges": await self.count_edges(),
        }
