"""
Data access for memory records in the canonical SQLite store.

These module-level functions are the persistent store contract consumed by
``MemoryStore`` and the rebuild bootstrapper. Errors are logged and re-raised:
callers decide how a failed collaborator is surfaced.
"""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Iterator, List, Sequence

from .db import get_db
from .schema import MemoryRecord, MemoryScope, ScopeFilter
from ..util.logging import logger

_COLUMNS = "memory_id, user_id, agent_id, scope, payload, embedding, embedding_model, created_at"


def _row_to_record(row) -> MemoryRecord:
    memory_id, user_id, agent_id, scope, payload, embedding, embedding_model, created_at = row
    created = datetime.fromisoformat(created_at)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return MemoryRecord(
        memory_id=memory_id,
        user_id=user_id,
        agent_id=agent_id,
        scope=scope,
        payload=payload,
        embedding=json.loads(embedding) if embedding else [],
        embedding_model=embedding_model,
        created_at=created,
    )


def insert_memory(record: MemoryRecord) -> None:
    """Persist a new memory record. Raises sqlite3.IntegrityError on a duplicate memory_id."""
    try:
        with get_db() as conn:
            conn.execute(
                "INSERT INTO memories (memory_id, user_id, agent_id, scope, payload, embedding, "
                "embedding_model, embedding_dim, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.memory_id,
                    record.user_id,
                    record.agent_id,
                    record.scope,
                    record.payload,
                    json.dumps(list(record.embedding)),
                    record.embedding_model,
                    record.embedding_dim,
                    record.created_at.isoformat(),
                )
            )
            conn.commit()
    except sqlite3.Error as e:
        logger.log_memory_operation("insert", record.memory_id, {"error": str(e)[:100]}, status="failed")
        raise

    logger.log_memory_operation("insert", record.memory_id, {
        "user_id": record.user_id,
        "scope": record.scope,
        "dimension": record.embedding_dim,
    })


def delete_by_owner(user_id: str, memory_id: str) -> bool:
    """Hard-delete a memory only if it belongs to user_id. Returns True if a row was deleted."""
    try:
        with get_db() as conn:
            cursor = conn.execute(
                "DELETE FROM memories WHERE user_id = ? AND memory_id = ?",
                (user_id, memory_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
    except sqlite3.Error as e:
        logger.log_memory_operation("delete", memory_id, {"error": str(e)[:100]}, status="failed")
        raise

    logger.log_memory_operation("delete", memory_id, {"user_id": user_id, "matched": deleted})
    return deleted


def find_by_ids_and_scope(memory_ids: Sequence[str], scope_filter: ScopeFilter) -> List[MemoryRecord]:
    """Fetch the records among memory_ids that scope_filter makes visible. Order is unspecified."""
    if not memory_ids:
        return []

    placeholders = ", ".join("?" for _ in memory_ids)
    # agent_id IS ? matches NULL to NULL, the same as ScopeFilter.matches
    query = (
        f"SELECT {_COLUMNS} FROM memories "
        f"WHERE user_id = ? AND memory_id IN ({placeholders}) "
        "AND (scope = ? OR (scope = ? AND agent_id IS ?))"
    )
    params = [scope_filter.user_id, *memory_ids, MemoryScope.GLOBAL, MemoryScope.AGENT, scope_filter.agent_id]

    try:
        with get_db() as conn:
            rows = conn.execute(query, params).fetchall()
    except sqlite3.Error as e:
        logger.error(f"Failed to fetch memories for user '{scope_filter.user_id}': {e}")
        raise

    return [_row_to_record(row) for row in rows]


def get_memory(user_id: str, memory_id: str):
    """Get a single memory owned by user_id, or None."""
    try:
        with get_db() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM memories WHERE user_id = ? AND memory_id = ?",
                (user_id, memory_id)
            ).fetchone()
    except sqlite3.Error as e:
        logger.error(f"Failed to get memory '{memory_id}': {e}")
        raise

    return _row_to_record(row) if row else None


def scan_all() -> Iterator[MemoryRecord]:
    """Yield every stored memory record. Used only to rebuild the vector index."""
    with get_db() as conn:
        cursor = conn.execute(f"SELECT {_COLUMNS} FROM memories ORDER BY created_at, memory_id")
        for row in cursor:
            yield _row_to_record(row)


def get_memory_count(user_id: str = None) -> int:
    """Get count of stored memories, optionally for a single user."""
    try:
        with get_db() as conn:
            if user_id:
                row = conn.execute("SELECT COUNT(*) FROM memories WHERE user_id = ?", (user_id,)).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM memories").fetchone()
            return row[0]
    except sqlite3.Error as e:
        logger.error(f"Failed to count memories: {e}")
        return 0
