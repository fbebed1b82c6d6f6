"""
Memory record types shared by the persistent store, the orchestrator and the API.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class MemoryScope:
    """Visibility class of a memory record."""
    GLOBAL = "global"
    AGENT = "agent"

    ALL = (GLOBAL, AGENT)


@dataclass
class MemoryRecord:
    memory_id: str
    user_id: str
    scope: str
    payload: str
    embedding: List[float]
    agent_id: Optional[str] = None
    embedding_model: str = "client"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def embedding_dim(self) -> int:
        return len(self.embedding)

    def to_public_dict(self) -> Dict[str, Any]:
        """Search result shape. The stored embedding is never returned."""
        return {
            "memory_id": self.memory_id,
            "payload": self.payload,
            "scope": self.scope,
            "agent_id": self.agent_id,
            "created_at": self.created_at,
            "embedding_model": self.embedding_model,
        }


@dataclass(frozen=True)
class ScopeFilter:
    """Visibility predicate for a requester.

    A record is eligible when it belongs to ``user_id`` and is either global,
    or agent-scoped with an ``agent_id`` equal to the requester's. A requester
    without an agent_id only matches agent-scoped records that also have none.
    """
    user_id: str
    agent_id: Optional[str] = None

    def matches(self, record: MemoryRecord) -> bool:
        if record.user_id != self.user_id:
            return False
        if record.scope == MemoryScope.GLOBAL:
            return True
        return record.scope == MemoryScope.AGENT and record.agent_id == self.agent_id
