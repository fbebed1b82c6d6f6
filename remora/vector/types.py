"""
Vector index result types - non-canonical, advisory layer over SQLite canonical truth.
"""

from dataclasses import dataclass


@dataclass
class QueryResult:
    """Represents a search result from the vector index."""

    id: str
    """Identifier of the matching memory record"""

    score: float
    """Cosine similarity of the match (-1 to 1; 0 for incomparable vectors)"""
