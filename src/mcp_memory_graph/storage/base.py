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
Abstract memory store interface.

The store is the sole writer of Memory and Edge records. It never computes
embeddings: vectors always arrive from the engine as plain float lists.
Every query is scoped to exactly one namespace.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..models.memory import Edge, Memory, ScoredMemory

logger = logging.getLogger(__name__)


@dataclass
class NewMemory:
    """Record fields for a memory about to be created."""

    namespace: str
    content: str
    title: str | None = None
    tags: list[str] = field(default_factory=list)
    source_type: str = "agent"
    source_id: str | None = None
    source_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class NewEdge:
    """Record fields for an edge about to be created."""

    namespace: str
    from_id: str
    to_id: str
    rel_type: str
    weight: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchFilters:
    """Pre-filters applied before similarity ranking."""

    tags: list[str] = field(default_factory=list)
    source_types: list[str] = field(default_factory=list)
    date_from: float | None = None
    date_to: float | None = None


@dataclass
class CreateResult:
    """Outcome of create-with-dedup: the record and whether it already existed."""

    memory: Memory
    existing: bool


class MemoryStore(ABC):
    """Abstract base class for memory stores."""

    async def initialize(self) -> None:
        """Prepare the backend (collections, indexes). Idempotent."""

    @abstractmethod
    async def create_memory(self, record: NewMemory, embedding: list[float], dedupe: bool = True) -> CreateResult:
        """
        Insert a memory, or return the existing one with identical content.

        With ``dedupe=True`` a memory in the same namespace whose content is
        byte-for-byte equal is returned unchanged (``existing=True``). With
        ``dedupe=False`` a new row is always inserted.
        """

    @abstractmethod
    async def get_memory(self, namespace: str, memory_id: str) -> Memory | None:
        """Point lookup. Ids from other namespaces behave as nonexistent."""

    @abstractmethod
    async def get_memories_batch(self, namespace: str, memory_ids: list[str]) -> list[Memory]:
        """Fetch several memories of one namespace, in the order requested.

        Unknown ids and ids from other namespaces are skipped.
        """

    @abstractmethod
    async def search_similar(
        self,
        namespace: str,
        embedding: list[float],
        filters: SearchFilters,
        top_k: int,
    ) -> list[ScoredMemory]:
        """
        Rank memories of a namespace by cosine similarity to ``embedding``.

        Scores are normalised to [0, 1]; ties are broken by newer
        ``created_at`` first, then by id. Returns at most ``top_k`` hits.
        """

    @abstractmethod
    async def get_edges_adjacent_to(self, namespace: str, memory_ids: list[str]) -> list[Edge]:
        """Edges of a namespace touching any of ``memory_ids`` in either direction."""

    @abstractmethod
    async def insert_edge(self, record: NewEdge) -> Edge:
        """Persist a new edge. Duplicate (from, to, rel_type) edges are allowed."""

    @abstractmethod
    async def refresh_memory(
        self, namespace: str, memory_id: str, metadata: dict[str, Any] | None = None
    ) -> Memory | None:
        """Merge metadata into a memory and bump ``updated_at``.

        Returns None when the memory does not exist in ``namespace``.
        """

    async def get_neighbors(self, namespace: str, seed_ids: list[str], hops: int = 1) -> list[Memory]:
        """
        Breadth-first expansion over edges, up to ``hops`` steps.

        Edges count as adjacency in either direction. Each hop collects the
        memories adjacent to the current frontier that are not yet visited
        (seed set plus everything already collected); the visited set also
        makes cycles terminate. The result is the union of all hops, in
        discovery order, excluding the seeds. Edge weight is not consulted.

        Args:
            namespace: Namespace to traverse
            seed_ids: Starting memory ids
            hops: Maximum number of edge steps

        Returns:
            Newly discovered memories that exist in ``namespace``
        """
        if not seed_ids or hops < 1:
            return []

        visited: set[str] = set(seed_ids)
        frontier: list[str] = list(dict.fromkeys(seed_ids))
        discovered: list[str] = []

        for hop in range(1, hops + 1):
            edges = await self.get_edges_adjacent_to(namespace, frontier)
            next_frontier: list[str] = []
            for edge in edges:
                for node_id in (edge.from_id, edge.to_id):
                    if node_id not in visited:
                        visited.add(node_id)
                        next_frontier.append(node_id)
            logger.debug(f"Neighbor hop {hop}: {len(edges)} edges, {len(next_frontier)} new memories")
            if not next_frontier:
                break
            discovered.extend(next_frontier)
            frontier = next_frontier

        return await self.get_memories_batch(namespace, discovered)

    async def get_stats(self) -> dict[str, Any]:
        """Backend statistics for health reporting."""
        return {"backend": type(self).__name__}

    async def close(self) -> None:
        """Release backend resources."""
