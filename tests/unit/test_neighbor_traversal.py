"""
Unit tests for bounded breadth-first neighbor traversal.

Uses a dictionary-backed store so the traversal logic in ``MemoryStore``
is tested independently of any backend.
"""

import time
import uuid
from typing import Any

import pytest

from mcp_memory_graph.models.memory import Edge, Memory, ScoredMemory
from mcp_memory_graph.storage.base import CreateResult, MemoryStore, NewEdge, NewMemory, SearchFilters


class InMemoryStore(MemoryStore):
    """Minimal dictionary-backed store; records adjacency queries for assertions."""

    def __init__(self):
        self.memories: dict[str, Memory] = {}
        self.edges: list[Edge] = []
        self.adjacency_queries: list[list[str]] = []

    async def create_memory(self, record: NewMemory, embedding: list[float], dedupe: bool = True) -> CreateResult:
        now = time.time()
        memory = Memory(id=str(uuid.uuid4()), created_at=now, updated_at=now, **record.__dict__)
        self.memories[memory.id] = memory
        return CreateResult(memory=memory, existing=False)

    async def get_memory(self, namespace: str, memory_id: str) -> Memory | None:
        memory = self.memories.get(memory_id)
        return memory if memory and memory.namespace == namespace else None

    async def get_memories_batch(self, namespace: str, memory_ids: list[str]) -> list[Memory]:
        return [m for m in (self.memories.get(i) for i in memory_ids) if m and m.namespace == namespace]

    async def search_similar(
        self, namespace: str, embedding: list[float], filters: SearchFilters, top_k: int
    ) -> list[ScoredMemory]:
        return []

    async def get_edges_adjacent_to(self, namespace: str, memory_ids: list[str]) -> list[Edge]:
        self.adjacency_queries.append(list(memory_ids))
        ids = set(memory_ids)
        return [e for e in self.edges if e.namespace == namespace and (e.from_id in ids or e.to_id in ids)]

    async def insert_edge(self, record: NewEdge) -> Edge:
        edge = Edge(id=str(uuid.uuid4()), created_at=time.time(), **record.__dict__)
        self.edges.append(edge)
        return edge

    async def refresh_memory(
        self, namespace: str, memory_id: str, metadata: dict[str, Any] | None = None
    ) -> Memory | None:
        return None


async def _add(store: InMemoryStore, content: str, namespace: str = "ns") -> str:
    result = await store.create_memory(NewMemory(namespace=namespace, content=content), [])
    return result.memory.id


async def _link(store: InMemoryStore, from_id: str, to_id: str, namespace: str = "ns", weight: float = 1.0):
    await store.insert_edge(
        NewEdge(namespace=namespace, from_id=from_id, to_id=to_id, rel_type="extends", weight=weight)
    )


@pytest.fixture
async def chain():
    """A -> B -> C -> D"""
    store = InMemoryStore()
    ids = [await _add(store, name) for name in "ABCD"]
    for left, right in zip(ids, ids[1:]):
        await _link(store, left, right)
    return store, ids


class TestNeighborTraversal:
    async def test_one_hop(self, chain):
        store, (a, b, c, d) = chain
        neighbors = await store.get_neighbors("ns", [a], hops=1)
        assert [m.id for m in neighbors] == [b]

    async def test_two_hops_collects_union(self, chain):
        store, (a, b, c, d) = chain
        neighbors = await store.get_neighbors("ns", [a], hops=2)
        assert [m.id for m in neighbors] == [b, c]

    async def test_edges_followed_in_both_directions(self, chain):
        store, (a, b, c, d) = chain
        neighbors = await store.get_neighbors("ns", [c], hops=1)
        assert {m.id for m in neighbors} == {b, d}

    async def test_seeds_excluded(self, chain):
        store, (a, b, c, d) = chain
        neighbors = await store.get_neighbors("ns", [a, b], hops=3)
        assert [m.id for m in neighbors] == [c, d]

    async def test_cycle_terminates(self):
        store = InMemoryStore()
        a, b, c = [await _add(store, name) for name in "abc"]
        await _link(store, a, b)
        await _link(store, b, c)
        await _link(store, c, a)

        neighbors = await store.get_neighbors("ns", [a], hops=3)

        assert sorted(m.id for m in neighbors) == sorted([b, c])
        # Second hop finds nothing new, so the third never queries
        assert len(store.adjacency_queries) == 2

    async def test_walks_chain_against_edge_direction(self, chain):
        store, (a, b, c, d) = chain
        neighbors = await store.get_neighbors("ns", [d], hops=3)
        assert [m.id for m in neighbors] == [c, b, a]
        assert store.adjacency_queries == [[d], [c], [b]]

    async def test_no_edges(self):
        store = InMemoryStore()
        a = await _add(store, "lonely")
        assert await store.get_neighbors("ns", [a], hops=2) == []

    async def test_empty_seeds(self, chain):
        store, _ = chain
        assert await store.get_neighbors("ns", [], hops=2) == []
        assert store.adjacency_queries == []

    async def test_other_namespace_edges_ignored(self, chain):
        store, (a, b, c, d) = chain
        foreign = await _add(store, "foreign", namespace="other")
        await _link(store, a, foreign, namespace="other")

        neighbors = await store.get_neighbors("ns", [a], hops=1)

        assert [m.id for m in neighbors] == [b]

    async def test_weight_does_not_affect_reachability(self):
        store = InMemoryStore()
        a, b = [await _add(store, name) for name in "ab"]
        await _link(store, a, b, weight=0.0)

        neighbors = await store.get_neighbors("ns", [a], hops=1)

        assert [m.id for m in neighbors] == [b]
