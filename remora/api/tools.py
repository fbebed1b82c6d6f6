"""
MCP tools for the memory store.

The tools mirror the HTTP routes: same validation, same results. The plain
functions take the store explicitly; ``build_mcp_server`` binds them to a
store and registers them on a FastMCP server. Tool handlers run the blocking
store calls in a worker thread, off the event loop.
"""

import asyncio
from typing import Annotated, Any, Dict, List, Literal, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ..core.config import DEFAULT_TOP_K, MAX_TOP_K, get_server_host
from ..core.store import MemoryStore
from ..util.logging import logger


def _clamp_top_k(top_k: Optional[int]) -> int:
    if top_k is None:
        return DEFAULT_TOP_K
    return max(1, min(int(top_k), MAX_TOP_K))


def _memories_result(records) -> Dict[str, Any]:
    memories = []
    for record in records:
        item = record.to_public_dict()
        item["created_at"] = item["created_at"].isoformat()
        memories.append(item)
    return {"memories": memories}


def add_memory(store: MemoryStore,
               user_id: str,
               scope: str,
               payload: str,
               embedding: List[float],
               agent_id: Optional[str] = None,
               embedding_model: Optional[str] = None) -> Dict[str, Any]:
    memory_id = store.add(
        user_id=user_id,
        scope=scope,
        payload=payload,
        embedding=embedding,
        agent_id=agent_id,
        embedding_model=embedding_model,
    )
    return {"memory_id": memory_id}


def search_memories(store: MemoryStore,
                    user_id: str,
                    query_embedding: List[float],
                    top_k: Optional[int] = DEFAULT_TOP_K,
                    agent_id: Optional[str] = None) -> Dict[str, Any]:
    records = store.search(user_id, query_embedding, top_k=_clamp_top_k(top_k), agent_id=agent_id)
    return _memories_result(records)


def delete_memory(store: MemoryStore, user_id: str, memory_id: str) -> Dict[str, Any]:
    store.delete(user_id, memory_id)
    return {"deleted": True}


def add_memory_text(store: MemoryStore,
                    user_id: str,
                    scope: str,
                    text: str,
                    agent_id: Optional[str] = None) -> Dict[str, Any]:
    return {"memory_id": store.add_text(user_id, scope, text, agent_id=agent_id)}


def search_memories_text(store: MemoryStore,
                         user_id: str,
                         query_text: str,
                         top_k: Optional[int] = DEFAULT_TOP_K,
                         agent_id: Optional[str] = None) -> Dict[str, Any]:
    records = store.search_text(user_id, query_text, top_k=_clamp_top_k(top_k), agent_id=agent_id)
    return _memories_result(records)


def build_mcp_server(store: MemoryStore) -> FastMCP:
    """Create the ``remora`` MCP server with tools bound to store.

    The text tools are only registered when the store has an embedding provider.
    """
    mcp = FastMCP("remora", host=get_server_host(), streamable_http_path="/")

    @mcp.tool(name="add_memory")
    async def add_memory_handler(
        user_id: Annotated[str, Field(description="User owner of the memory")],
        scope: Annotated[Literal["global", "agent"], Field(description="Memory scope")],
        payload: Annotated[str, Field(description="Opaque memory content (ciphertext or text)")],
        embedding: Annotated[List[float], Field(min_length=1, description="Vector embedding (client generated)")],
        agent_id: Annotated[Optional[str], Field(description="Agent creating the memory")] = None,
        embedding_model: Annotated[Optional[str], Field(description="Embedding model identifier")] = None,
    ) -> Dict[str, Any]:
        """Store a memory with its client-generated embedding. Returns the new memory_id."""
        return await asyncio.to_thread(add_memory, store, user_id, scope, payload, embedding, agent_id, embedding_model)

    @mcp.tool(name="search_memories")
    async def search_memories_handler(
        user_id: Annotated[str, Field(description="User owner")],
        query_embedding: Annotated[List[float], Field(min_length=1, description="Query embedding (client generated)")],
        top_k: Annotated[int, Field(ge=1, le=MAX_TOP_K)] = DEFAULT_TOP_K,
        agent_id: Annotated[Optional[str], Field(description="Agent requesting memory")] = None,
    ) -> Dict[str, Any]:
        """Find the memories most similar to query_embedding that this agent may see."""
        return await asyncio.to_thread(search_memories, store, user_id, query_embedding, top_k, agent_id)

    @mcp.tool(name="delete_memory")
    async def delete_memory_handler(user_id: str, memory_id: str) -> Dict[str, Any]:
        """Hard-delete a memory. Succeeds even if the memory does not exist."""
        return await asyncio.to_thread(delete_memory, store, user_id, memory_id)

    if store.embedding_provider is not None:
        @mcp.tool(name="add_memory_text")
        async def add_memory_text_handler(
            user_id: str,
            text: Annotated[str, Field(description="The fact to remember")],
            scope: Literal["global", "agent"],
            agent_id: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Save a fact. The server computes the embedding."""
            return await asyncio.to_thread(add_memory_text, store, user_id, scope, text, agent_id)

        @mcp.tool(name="search_memories_text")
        async def search_memories_text_handler(
            user_id: str,
            query_text: Annotated[str, Field(description="What are you looking for?")],
            top_k: Annotated[int, Field(ge=1, le=MAX_TOP_K)] = DEFAULT_TOP_K,
            agent_id: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Find facts by searching the meaning of the query text."""
            return await asyncio.to_thread(search_memories_text, store, user_id, query_text, top_k, agent_id)

    logger.info(f"MCP server 'remora' built (text tools: {store.embedding_provider is not None})")
    return mcp
