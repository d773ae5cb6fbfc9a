#!/usr/bin/env python3
"""FastMCP server exposing the memory engine.

Four tools (``memory_add``, ``memory_get``, ``memory_search``,
``memory_link``) are thin wrappers over ``MemoryEngine``: the engine does all
validation, and any ``MemoryEngineError`` becomes a ``{"success": false}``
response naming the error kind. A plain ``GET /health`` route reports
liveness for HTTP deployments.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .config import SERVICE_NAME, settings
from .errors import MemoryEngineError
from .services.memory_engine import MemoryEngine

logger = logging.getLogger(__name__)

TOOL_NAMES = ["memory_add", "memory_get", "memory_search", "memory_link"]


@dataclass
class MCPServerContext:
    """Application context for the MCP server."""

    engine: MemoryEngine


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Resolve the shared engine on startup and close it on shutdown."""
    from .shared_storage import close_shared_engine, get_shared_engine

    engine = await get_shared_engine()
    try:
        yield MCPServerContext(engine=engine)
    finally:
        logger.info("Shutting down memory graph service components...")
        await close_shared_engine()


mcp = FastMCP(SERVICE_NAME, lifespan=mcp_server_lifespan)


def _engine(ctx: Context) -> MemoryEngine:
    return ctx.request_context.lifespan_context.engine


def _failure(error: MemoryEngineError) -> dict[str, Any]:
    return {"success": False, **error.to_dict()}


# =============================================================================
# TOOLS
# =============================================================================


@mcp.tool()
async def memory_add(
    namespace: str,
    content: str,
    ctx: Context,
    title: str | None = None,
    tags: list[str] | None = None,
    source_type: str = "agent",
    source_id: str | None = None,
    source_url: str | None = None,
    metadata: dict[str, Any] | None = None,
    dedupe: bool = True,
) -> dict[str, Any]:
    """Store a memory for later semantic retrieval.

    Identical content in the same namespace returns the existing memory when
    dedupe is true.

    Args:
        namespace: Isolation key (org, project or user scope)
        content: Text to store (embedded for semantic search)
        title: Optional short label
        tags: Labels used for filtering
        source_type: "agent", "manual", "import", "derived" or a custom value
        source_id: Optional provenance reference
        source_url: Optional provenance URL
        metadata: Structured data to attach
        dedupe: Return the existing memory instead of inserting duplicate content

    Returns:
        {success, id, created_at, updated_at, tags, metadata, deduplicated, existing}
    """
    try:
        result = await _engine(ctx).add(
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
    except MemoryEngineError as e:
        return _failure(e)
    return {"success": True, **result.model_dump()}


@mcp.tool()
async def memory_get(namespace: str, id: str, ctx: Context) -> dict[str, Any]:
    """Fetch one memory by id within a namespace.

    Returns:
        {success, memory} where memory is null when the id is unknown in this namespace
    """
    try:
        memory = await _engine(ctx).get(namespace=namespace, memory_id=id)
    except MemoryEngineError as e:
        return _failure(e)
    return {"success": True, "memory": memory.to_dict() if memory else None}


@mcp.tool()
async def memory_search(
    namespace: str,
    query: str,
    ctx: Context,
    top_k: int = 10,
    tag_filter: list[str] | None = None,
    source_type_filter: list[str] | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    include_neighbors: bool = False,
    neighbors_hop: int = 1,
) -> dict[str, Any]:
    """Semantic search over memories in a namespace.

    Args:
        namespace: Isolation key
        query: Natural-language query
        top_k: Maximum results (1-100)
        tag_filter: Keep memories having at least one of these tags
        source_type_filter: Keep memories with one of these source types
        date_from: Inclusive lower bound on creation time (ISO-8601 or relative like "7d")
        date_to: Inclusive upper bound on creation time
        include_neighbors: Also return memories linked to the results
        neighbors_hop: Link hops to follow for related memories (1-3)

    Returns:
        {success, results: [memory + score], related?: [memory]}
    """
    try:
        response = await _engine(ctx).search(
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
    except MemoryEngineError as e:
        return _failure(e)
    return {"success": True, **response.to_dict()}


@mcp.tool()
async def memory_link(
    namespace: str,
    from_id: str,
    to_id: str,
    rel_type: str,
    ctx: Context,
    weight: float = 1.0,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a directed relationship between two memories of one namespace.

    Args:
        namespace: Isolation key shared by both memories
        from_id: Source memory id
        to_id: Target memory id (must differ from from_id)
        rel_type: One of "updates", "extends", "derives", "mentions"
        weight: Importance hint in [0, 1]
        metadata: Structured data to attach to the edge

    Returns:
        {success, edge_id, created_at}
    """
    try:
        result = await _engine(ctx).link(
            namespace=namespace,
            from_id=from_id,
            to_id=to_id,
            rel_type=rel_type,
            weight=weight,
            metadata=metadata,
        )
    except MemoryEngineError as e:
        return _failure(e)
    return {"success": True, **result.model_dump()}


# =============================================================================
# HTTP ROUTES
# =============================================================================


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    """Liveness check; does not touch the store or the embedding provider."""
    return JSONResponse(
        {
            "status": "ok",
            "name": SERVICE_NAME,
            "version": __version__,
            "tools": TOOL_NAMES,
        }
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main():
    """Main entry point for the memory graph MCP server."""
    logging.basicConfig(level=settings.server.log_level.upper())

    missing = settings.validate_runtime()
    if missing:
        logger.error("Missing required environment variables:")
        for name in missing:
            logger.error(f"   - {name}")
        sys.exit(1)

    logger.info(f"Embeddings: {settings.embeddings.model} ({settings.embeddings.provider})")
    logger.info(f"Storage: Qdrant collection '{settings.qdrant.collection_name}'")

    if settings.server.transport == "stdio":
        logger.info("Starting memory graph MCP server in STDIO mode")
        mcp.run(transport="stdio")
    else:
        logger.info(f"Starting memory graph MCP server on {settings.server.host}:{settings.server.port}")
        mcp.run(transport="http", host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
