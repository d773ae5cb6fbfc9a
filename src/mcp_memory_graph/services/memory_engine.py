"""
Memory Engine - orchestration of embedding and storage for memory operations.

The engine validates each request, computes embeddings through the injected
provider and delegates persistence to the injected store. Validation always
happens before any provider or store call, a failed embedding aborts before
any store mutation, and every failure propagates to the caller as a
``MemoryEngineError`` subclass. Nothing is retried here.
"""

import asyncio
import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..embeddings.base import EmbeddingProvider
from ..errors import ValidationError
from ..models.inputs import (
    AddMemoryParams,
    GetMemoryParams,
    LinkParams,
    NeighborParams,
    RefreshParams,
    SearchParams,
)
from ..models.memory import Memory, float_to_iso
from ..models.responses import AddMemoryResult, LinkResult, SearchResponse
from ..storage.base import MemoryStore, NewEdge, NewMemory, SearchFilters

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)


def _validate(model: type[P], **kwargs: Any) -> P:
    """Build an input model, converting pydantic errors into ``ValidationError``.

    The message names every failing field so callers know which constraint failed.
    """
    try:
        return model(**kwargs)
    except PydanticValidationError as e:
        problems = []
        fields = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"])
            message = err["msg"].removeprefix("Value error, ")
            problems.append(f"{loc}: {message}" if loc else message)
            if loc:
                fields.append(loc)
        raise ValidationError("; ".join(problems), field=fields[0] if fields else None) from e


class MemoryEngine:
    """
    Namespaced semantic memory with deduplication, similarity search and
    graph-linked traversal.

    The store and the embedding provider are injected so the engine can run
    against any backend (including in-memory fakes in tests).
    """

    def __init__(self, storage: MemoryStore, embeddings: EmbeddingProvider):
        self.storage = storage
        self.embeddings = embeddings

    # ------------------------------------------------------------------
    # add
    # ------------------------------------------------------------------

    async def add(
        self,
        namespace: str,
        content: str,
        title: str | None = None,
        tags: list[str] | str | None = None,
        source_type: str = "agent",
        source_id: str | None = None,
        source_url: str | None = None,
        metadata: dict[str, Any] | None = None,
        dedupe: bool = True,
    ) -> AddMemoryResult:
        """
        Store a memory, returning the existing record when content repeats.

        Args:
            namespace: Isolation key
            content: Text payload (embedded for similarity search)
            title: Optional short label
            tags: Labels used for filtering
            source_type: Provenance kind ("agent", "manual", "import", "derived", ...)
            source_id: Optional opaque provenance reference
            source_url: Optional provenance URL
            metadata: Open key-value map
            dedupe: Return an existing memory with byte-identical content instead of inserting

        Returns:
            AddMemoryResult with the record's id, timestamps, tags, metadata and
            the ``deduplicated`` / ``existing`` flags

        Raises:
            ValidationError: Empty namespace or content (before any embedding call)
            ProviderError: Embedding failed (no store mutation happened)
            StoreError: Persistence failed
        """
        params = _validate(
            AddMemoryParams,
            namespace=namespace,
            content=content,
            title=title,
            tags=tags,
            source_type=source_type,
            source_id=source_id,
            source_url=source_url,
            metadata=metadata,
            dedupe=dedupe,
        )

        embedding = await self.embeddings.embed_one(params.content)

        record = NewMemory(
            namespace=params.namespace,
            content=params.content,
            title=params.title,
            tags=params.tags,
            source_type=params.source_type,
            source_id=params.source_id,
            source_url=params.source_url,
            metadata=params.metadata,
        )
        created = await self.storage.create_memory(record, embedding, dedupe=params.dedupe)

        result = AddMemoryResult.from_memory(created.memory, existing=created.existing)
        logger.info(
            f"add namespace='{params.namespace}' id={result.id} existing={result.existing} "
            f"deduplicated={result.deduplicated}"
        )
        return result

    # ------------------------------------------------------------------
    # get
    # ------------------------------------------------------------------

    async def get(self, namespace: str, memory_id: str) -> Memory | None:
        """
        Point lookup scoped to a namespace.

        An id that exists only in another namespace returns None, exactly
        like an id that does not exist at all.
        """
        params = _validate(GetMemoryParams, namespace=namespace, id=memory_id)
        return await self.storage.get_memory(params.namespace, params.id)

    # ------------------------------------------------------------------
    # search
    # ------------------------------------------------------------------

    async def search(
        self,
        namespace: str,
        query: str,
        top_k: int = 10,
        tag_filter: list[str] | str | None = None,
        source_type_filter: list[str] | str | None = None,
        date_from: Any = None,
        date_to: Any = None,
        include_neighbors: bool = False,
        neighbors_hop: int = 1,
    ) -> SearchResponse:
        """
        Semantic search within a namespace, optionally expanded over edges.

        Args:
            namespace: Isolation key
            query: Search text (embedded with the same provider as stored content)
            top_k: Maximum results (1..100); fewer candidates simply return fewer hits
            tag_filter: Keep memories sharing at least one of these tags
            source_type_filter: Keep memories whose source_type is listed
            date_from: Inclusive lower bound on created_at (datetime, unix seconds, ISO-8601 or "7d")
            date_to: Inclusive upper bound on created_at
            include_neighbors: Attach memories reachable from the results as ``related``
            neighbors_hop: Traversal depth for ``related`` (1..3)

        Returns:
            SearchResponse; ``related`` is None unless expansion ran on non-empty results
        """
        params = _validate(
            SearchParams,
            namespace=namespace,
            query=query,
            top_k=top_k,
            tag_filter=tag_filter,
            source_type_filter=source_type_filter,
            date_from=date_from,
            date_to=date_to,
            include_neighbors=include_neighbors,
            neighbors_hop=neighbors_hop,
        )

        query_embedding = await self.embeddings.embed_one(params.query)

        filters = SearchFilters(
            tags=params.tag_filter,
            source_types=params.source_type_filter,
            date_from=params.date_from,
            date_to=params.date_to,
        )
        results = await self.storage.search_similar(params.namespace, query_embedding, filters, params.top_k)

        related = None
        if params.include_neighbors and results:
            result_ids = [hit.memory.id for hit in results]
            neighbors = await self.storage.get_neighbors(params.namespace, result_ids, hops=params.neighbors_hop)
            seen = set(result_ids)
            related = [memory for memory in neighbors if memory.id not in seen]

        logger.debug(
            f"search namespace='{params.namespace}' top_k={params.top_k} results={len(results)} "
            f"related={len(related) if related is not None else None}"
        )
        return SearchResponse(results=results, related=related)

    # ------------------------------------------------------------------
    # neighbors
    # ------------------------------------------------------------------

    async def neighbors(self, namespace: str, seed_ids: list[str], hops: int = 1) -> list[Memory]:
        """
        Memories reachable from ``seed_ids`` within ``hops`` edge steps (1..3).

        Edges are followed in both directions; the seeds themselves are excluded.
        """
        params = _validate(NeighborParams, namespace=namespace, seed_ids=seed_ids, hops=hops)
        return await self.storage.get_neighbors(params.namespace, params.seed_ids, hops=params.hops)

    # ------------------------------------------------------------------
    # link
    # ------------------------------------------------------------------

    async def link(
        self,
        namespace: str,
        from_id: str,
        to_id: str,
        rel_type: str,
        weight: float = 1.0,
        metadata: dict[str, Any] | None = None,
    ) -> LinkResult:
        """
        Create a directed, typed edge between two memories of one namespace.

        Linking the same pair twice creates two edges; callers wanting
        idempotent links must dedupe themselves.

        Raises:
            ValidationError: Self-loop, weight outside [0, 1], unknown rel_type,
                or an endpoint missing from ``namespace`` (including endpoints
                that live in another namespace)
            StoreError: The edge insert failed
        """
        params = _validate(
            LinkParams,
            namespace=namespace,
            from_id=from_id,
            to_id=to_id,
            rel_type=rel_type,
            weight=weight,
            metadata=metadata,
        )

        source, target = await asyncio.gather(
            self.storage.get_memory(params.namespace, params.from_id),
            self.storage.get_memory(params.namespace, params.to_id),
        )
        if source is None:
            raise ValidationError(
                f"from_id: memory {params.from_id} not found in namespace '{params.namespace}'", field="from_id"
            )
        if target is None:
            raise ValidationError(
                f"to_id: memory {params.to_id} not found in namespace '{params.namespace}'", field="to_id"
            )
        if source.id == target.id:
            raise ValidationError("self-loop: from_id and to_id must differ", field="to_id")

        edge = await self.storage.insert_edge(
            NewEdge(
                namespace=params.namespace,
                from_id=source.id,
                to_id=target.id,
                rel_type=params.rel_type,
                weight=params.weight,
                metadata=params.metadata,
            )
        )
        return LinkResult(edge_id=edge.id, created_at=float_to_iso(edge.created_at))

    # ------------------------------------------------------------------
    # refresh
    # ------------------------------------------------------------------

    async def refresh(self, namespace: str, memory_id: str, metadata: dict[str, Any] | None = None) -> Memory:
        """
        Explicit update path: merge metadata and bump ``updated_at``.

        Content and embedding never change. After a refresh, adding the same
        content again reports ``deduplicated=True``.
        """
        params = _validate(RefreshParams, namespace=namespace, id=memory_id, metadata=metadata)
        memory = await self.storage.refresh_memory(params.namespace, params.id, params.metadata)
        if memory is None:
            raise ValidationError(f"id: memory {params.id} not found in namespace '{params.namespace}'", field="id")
        return memory

    # ------------------------------------------------------------------
    # health / lifecycle
    # ------------------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        """Describe the store and embedding provider; store failures propagate."""
        return {
            "status": "ok",
            "store": await self.storage.get_stats(),
            "embeddings": self.embeddings.describe(),
        }

    async def close(self) -> None:
        await self.embeddings.close()
        await self.storage.close()
