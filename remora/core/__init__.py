"""
Canonical SQLite store, memory orchestration and index rebuild.
"""

from .schema import MemoryRecord, MemoryScope, ScopeFilter
from .store import MemoryStore, MemoryValidationError, EmbeddingUnavailableError
from .bootstrap import rebuild_vector_index, RebuildSummary

__all__ = [
    'MemoryRecord',
    'MemoryScope',
    'ScopeFilter',
    'MemoryStore',
    'MemoryValidationError',
    'EmbeddingUnavailableError',
    'rebuild_vector_index',
    'RebuildSummary'
]
