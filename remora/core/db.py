"""
SQLite persistence for memory records - the canonical, durable store.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    if db_path is None:
        ensure_db_directory()
        db_path = get_db_path()
    conn = sqlite3.connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with required tables."""
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS memories (
                memory_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                agent_id TEXT,
                scope TEXT NOT NULL CHECK (scope IN ('global', 'agent')),
                payload TEXT NOT NULL,
                embedding TEXT NOT NULL,  -- JSON array, dimension varies per record
                embedding_model TEXT,
                embedding_dim INTEGER,
                created_at TIMESTAMP NOT NULL
            )
        ''')

        # Owner lookups for scoped fetch and delete
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_memories_user_id ON memories(user_id)')

        conn.commit()


def health_check(db_path: Optional[str] = None) -> bool:
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            return 'memories' in table_names
    except sqlite3.Error:
        return False
