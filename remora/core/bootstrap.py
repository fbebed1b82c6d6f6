"""
Rebuilds the vector index from the canonical SQLite store.

This is the only reconciliation between the two stores. It runs once at
startup, before requests are served, and repairs divergence left by partial
failures of earlier add/delete calls.
"""

import time
from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from . import dao
from ..util.logging import logger
from ..vector.index import IVectorIndex


@dataclass
class RebuildSummary:
    scanned: int
    indexed: int
    skipped: int
    duration_ms: float


def rebuild_vector_index(vector_index: IVectorIndex, repository: Optional[ModuleType] = None) -> RebuildSummary:
    """Clear vector_index and upsert every stored record that has an embedding."""
    repository = repository if repository is not None else dao
    start = time.monotonic()

    vector_index.clear()

    scanned = indexed = skipped = 0
    for record in repository.scan_all():
        scanned += 1
        if not record.embedding:
            skipped += 1
            continue
        vector_index.upsert(record.memory_id, record.embedding)
        indexed += 1

    duration_ms = round((time.monotonic() - start) * 1000, 2)
    logger.log_rebuild(scanned, indexed, skipped, duration_ms)

    return RebuildSummary(scanned=scanned, indexed=indexed, skipped=skipped, duration_ms=duration_ms)
