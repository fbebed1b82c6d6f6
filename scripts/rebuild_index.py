#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds a vector index from the canonical SQLite store and verifies it,
reporting how many stored memories are indexable.
"""

import argparse
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from remora.core import dao
from remora.core.bootstrap import rebuild_vector_index
from remora.core.config import get_vector_index
from remora.core.db import health_check, init_db


def verify_index(vector_index, indexed_count: int) -> bool:
    """Search with a stored embedding; its own record should be among the top hits."""
    sample = next((record for record in dao.scan_all() if record.embedding), None)
    if sample is None:
        return True

    results = vector_index.search(sample.embedding, top_k=min(3, indexed_count))
    print(f"✓ Verification search returned {len(results)} results")
    return any(result.id == sample.memory_id for result in results)


def main(argv=None):
    """Rebuild vector index from the SQLite memory store."""
    parser = argparse.ArgumentParser(description="Rebuild the vector index from SQLite")
    parser.add_argument("--db-path", help="SQLite database path (default: $DB_PATH)")
    args = parser.parse_args(argv)

    if args.db_path:
        os.environ["DB_PATH"] = args.db_path

    init_db()
    if not health_check():
        print("ERROR: Database unavailable or missing memories table")
        sys.exit(1)

    print("Starting vector index rebuild...")

    vector_index = get_vector_index()
    summary = rebuild_vector_index(vector_index)

    print(f"Found {summary.scanned} memories in canonical store")
    if summary.skipped:
        print(f"Skipped {summary.skipped} memories without embeddings")

    if summary.indexed == 0:
        print("No entries to rebuild. Exiting.")
        return summary

    print(f"✓ Successfully rebuilt index with {summary.indexed} vectors in {summary.duration_ms}ms")

    if not verify_index(vector_index, summary.indexed):
        print("WARNING: Verification search did not return the sampled memory")

    print("Index rebuild complete!")
    return summary


if __name__ == "__main__":
    main()
