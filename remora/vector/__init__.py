"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
"""

from .index import IVectorIndex, InMemoryVectorIndex, cosine_similarity
from .types import QueryResult
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding

__all__ = [
    'IVectorIndex',
    'InMemoryVectorIndex',
    'cosine_similarity',
    'QueryResult',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding'
]
