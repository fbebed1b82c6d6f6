"""
In-memory vector index - non-canonical, advisory layer over SQLite canonical truth.

Exact nearest-neighbour search by cosine similarity. Every search scans all
indexed vectors (O(n*d)); an approximate index can replace
``InMemoryVectorIndex`` behind ``IVectorIndex`` without touching callers.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .types import QueryResult


def cosine_similarity(a, b) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm, so
    embeddings of different dimensions can share one index.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return 0.0
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)


class IVectorIndex(ABC):
    """Abstract interface for vector index operations."""

    @abstractmethod
    def upsert(self, record_id: str, vector: Sequence[float]) -> None:
        """Insert or replace the vector for record_id."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove record_id if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all vectors."""
        pass

    @abstractmethod
    def search(self, query_vector: Sequence[float], top_k: int = 5) -> List[QueryResult]:
        """Return up to top_k results ordered by descending similarity."""
        pass


class InMemoryVectorIndex(IVectorIndex):
    """Brute-force cosine index guarded by a single lock.

    Ties in score keep insertion order, so repeated searches over the same
    index state return the same ordering.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._vectors: Dict[str, Tuple[np.ndarray, float]] = {}  # record_id -> (vector, norm)

    def upsert(self, record_id: str, vector: Sequence[float]) -> None:
        arr = np.asarray(vector, dtype=np.float64).ravel()
        if arr.size == 0:
            raise ValueError(f"Cannot index empty vector for {record_id}")
        if not np.isfinite(arr).all():
            raise ValueError(f"Cannot index non-finite vector for {record_id}")
        norm = float(np.linalg.norm(arr))
        with self._lock:
            # Replacing keeps the original insertion position
            self._vectors[record_id] = (arr, norm)

    def delete(self, record_id: str) -> None:
        with self._lock:
            self._vectors.pop(record_id, None)

    def clear(self) -> None:
        with self._lock:
            self._vectors.clear()

    def search(self, query_vector: Sequence[float], top_k: int = 5) -> List[QueryResult]:
        if top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64).ravel()
        if not np.isfinite(query).all():
            raise ValueError("Cannot search with a non-finite query vector")
        query_norm = float(np.linalg.norm(query))

        with self._lock:
            scored = []
            for record_id, (vector, norm) in self._vectors.items():
                if vector.shape != query.shape or norm == 0 or query_norm == 0:
                    score = 0.0
                else:
                    score = float(np.dot(query, vector) / (query_norm * norm))
                scored.append((record_id, score))

        # sorted() is stable: equal scores stay in insertion order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)
        return [QueryResult(id=record_id, score=score) for record_id, score in scored[:top_k]]

    def __len__(self) -> int:
        with self._lock:
            return len(self._vectors)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._vectors
