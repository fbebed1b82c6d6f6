"""
Hybrid memory store: coordinates the SQLite canonical store and the in-memory
vector index.

Writes persist first and index second, so a failure in between leaves a
durable but unindexed record that the next rebuild picks up. There is no
transaction across the two stores and no rollback of a persisted record.

Search ranks first and filters by scope second. Candidates the requester
cannot see are dropped, not backfilled, so a search can return fewer than
``top_k`` records even when more visible records exist.
"""

import math
import uuid
from types import ModuleType
from typing import List, Optional, Sequence

from . import dao
from .config import DEFAULT_EMBEDDING_MODEL, get_embedding_provider
from .schema import MemoryRecord, MemoryScope, ScopeFilter
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import InMemoryVectorIndex, IVectorIndex


class MemoryValidationError(ValueError):
    """Client input rejected before any store is touched."""


class EmbeddingUnavailableError(RuntimeError):
    """Text-based operation requested without a server-side embedding provider."""


def _require_user_id(user_id: Optional[str]) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise MemoryValidationError("user_id required")
    return user_id


def _require_embedding(embedding: Optional[Sequence[float]], field_name: str) -> List[float]:
    if embedding is None or isinstance(embedding, (str, bytes)):
        raise MemoryValidationError(f"{field_name} must be number[]")
    try:
        values = [float(x) for x in embedding]
    except (TypeError, ValueError):
        raise MemoryValidationError(f"{field_name} must be number[]")
    if not values:
        raise MemoryValidationError(f"{field_name} must be number[]")
    # NaN scores would break the ranking for every user sharing the index
    if not all(math.isfinite(x) for x in values):
        raise MemoryValidationError(f"{field_name} must contain only finite numbers")
    return values


class MemoryStore:
    """Public add/search/delete contract over both stores.

    Args:
        vector_index: Shared index; a fresh ``InMemoryVectorIndex`` by default.
        repository: Persistent store exposing ``insert_memory``,
            ``delete_by_owner``, ``find_by_ids_and_scope`` and ``scan_all``.
            Defaults to the SQLite ``dao`` module.
        embedding_provider: Optional provider for the text-based operations.
    """

    def __init__(self,
                 vector_index: Optional[IVectorIndex] = None,
                 repository: Optional[ModuleType] = None,
                 embedding_provider: Optional[IEmbeddingProvider] = None):
        self.index = vector_index if vector_index is not None else InMemoryVectorIndex()
        self.repository = repository if repository is not None else dao
        self.embedding_provider = embedding_provider

    @classmethod
    def from_config(cls) -> "MemoryStore":
        """Build a store with the configured embedding provider."""
        return cls(embedding_provider=get_embedding_provider())

    def add(self,
            user_id: str,
            scope: str,
            payload: str,
            embedding: Sequence[float],
            agent_id: Optional[str] = None,
            embedding_model: Optional[str] = None) -> str:
        """Persist a memory, then make it searchable. Returns the new memory_id."""
        _require_user_id(user_id)
        if scope not in MemoryScope.ALL:
            raise MemoryValidationError(f"scope must be one of: {list(MemoryScope.ALL)}")
        if not isinstance(payload, str):
            raise MemoryValidationError("payload must be a string")
        vector = _require_embedding(embedding, "embedding")

        record = MemoryRecord(
            memory_id=str(uuid.uuid4()),
            user_id=user_id,
            agent_id=agent_id,
            scope=scope,
            payload=payload,
            embedding=vector,
            embedding_model=embedding_model or DEFAULT_EMBEDDING_MODEL,
        )

        self.repository.insert_memory(record)

        try:
            self.index.upsert(record.memory_id, vector)
        except Exception as e:
            # Record is durable; it becomes searchable after the next rebuild
            logger.log_vector_operation("upsert", record.memory_id, {"error": str(e)[:100]}, status="failed")
            raise

        logger.log_vector_operation("upsert", record.memory_id, {"dimension": len(vector)})
        return record.memory_id

    def search(self,
               user_id: str,
               query_embedding: Sequence[float],
               top_k: int = 5,
               agent_id: Optional[str] = None) -> List[MemoryRecord]:
        """Return the visible memories among the top_k most similar, in rank order."""
        _require_user_id(user_id)
        query = _require_embedding(query_embedding, "query_embedding")
        if not isinstance(top_k, int) or isinstance(top_k, bool) or top_k < 1:
            raise MemoryValidationError("top_k must be a positive integer")

        ranked = self.index.search(query, top_k)
        ranked_ids = [result.id for result in ranked]
        if not ranked_ids:
            logger.log_search(user_id, 0, 0, top_k)
            return []

        records = self.repository.find_by_ids_and_scope(ranked_ids, ScopeFilter(user_id, agent_id))

        # Preserve similarity order
        by_id = {record.memory_id: record for record in records}
        ordered = [by_id[memory_id] for memory_id in ranked_ids if memory_id in by_id]

        logger.log_search(user_id, len(ranked_ids), len(ordered), top_k)
        return ordered

    def delete(self, user_id: str, memory_id: str) -> bool:
        """Hard-delete a memory owned by user_id. Always reports success."""
        _require_user_id(user_id)
        if not isinstance(memory_id, str) or not memory_id:
            raise MemoryValidationError("memory_id required")

        try:
            self.repository.delete_by_owner(user_id, memory_id)
        finally:
            # Dropping the id from the index is harmless even if the store failed
            self.index.delete(memory_id)
            logger.log_vector_operation("delete", memory_id)

        return True

    # Server-side embedding

    def _embed(self, text: str) -> List[float]:
        if self.embedding_provider is None:
            raise EmbeddingUnavailableError("No embedding provider configured (set EMBED_PROVIDER)")
        if not isinstance(text, str) or not text.strip():
            raise MemoryValidationError("text cannot be empty")
        return self.embedding_provider.embed_text(text)

    def add_text(self,
                 user_id: str,
                 scope: str,
                 text: str,
                 agent_id: Optional[str] = None) -> str:
        """Embed text with the configured provider and store it as the payload."""
        _require_user_id(user_id)
        embedding = self._embed(text)
        return self.add(
            user_id=user_id,
            scope=scope,
            payload=text,
            embedding=embedding,
            agent_id=agent_id,
            embedding_model=self.embedding_provider.model_name,
        )

    def search_text(self,
                    user_id: str,
                    query_text: str,
                    top_k: int = 5,
                    agent_id: Optional[str] = None) -> List[MemoryRecord]:
        """Embed query_text with the configured provider and search."""
        _require_user_id(user_id)
        return self.search(user_id, self._embed(query_text), top_k=top_k, agent_id=agent_id)
