"""
Memory store orchestration tests: dual write, scoped ranked search, idempotent delete.
"""

import sqlite3
from unittest.mock import MagicMock

import pytest

from remora.core import dao
from remora.core.bootstrap import rebuild_vector_index
from remora.core.schema import MemoryRecord, MemoryScope
from remora.core.store import EmbeddingUnavailableError, MemoryStore, MemoryValidationError
from remora.vector.embeddings import DeterministicHashEmbedding
from remora.vector.index import InMemoryVectorIndex


@pytest.fixture
def store(temp_db):
    return MemoryStore(vector_index=InMemoryVectorIndex())


def test_add_persists_then_indexes(store):
    memory_id = store.add("user_1", "global", "likes tea", [1.0, 0.0], agent_id="agent_a")

    assert dao.get_memory("user_1", memory_id) is not None
    assert memory_id in store.index


def test_add_defaults_embedding_model(store):
    memory_id = store.add("user_1", "global", "likes tea", [1.0, 0.0])
    assert dao.get_memory("user_1", memory_id).embedding_model == "client"


def test_add_rejects_empty_embedding_without_side_effects(store):
    with pytest.raises(MemoryValidationError):
        store.add("user_1", "global", "likes tea", [])

    assert dao.get_memory_count() == 0
    assert len(store.index) == 0


@pytest.mark.parametrize("kwargs", [
    {"user_id": "", "scope": "global", "payload": "p", "embedding": [1.0]},
    {"user_id": "user_1", "scope": "team", "payload": "p", "embedding": [1.0]},
    {"user_id": "user_1", "scope": "global", "payload": None, "embedding": [1.0]},
    {"user_id": "user_1", "scope": "global", "payload": "p", "embedding": None},
    {"user_id": "user_1", "scope": "global", "payload": "p", "embedding": ["not", "numbers"]},
])
def test_add_rejects_invalid_input(store, kwargs):
    with pytest.raises(MemoryValidationError):
        store.add(**kwargs)
    assert dao.get_memory_count() == 0


def test_search_returns_records_without_embeddings(store):
    store.add("user_1", "global", "likes tea", [1.0, 0.0], embedding_model="minilm")

    results = store.search("user_1", [1.0, 0.0], top_k=5)

    assert len(results) == 1
    public = results[0].to_public_dict()
    assert public["payload"] == "likes tea"
    assert public["embedding_model"] == "minilm"
    assert "embedding" not in public


def test_search_preserves_similarity_order(store):
    a = store.add("user_1", "global", "A", [1.0, 0.0])
    b = store.add("user_1", "global", "B", [0.0, 1.0])
    c = store.add("user_1", "global", "C", [0.9, 0.1])

    results = store.search("user_1", [1.0, 0.0], top_k=2)
    assert [r.memory_id for r in results] == [a, c]

    results = store.search("user_1", [1.0, 0.0], top_k=3)
    assert [r.memory_id for r in results] == [a, c, b]


def test_search_reorders_unordered_repository_results():
    index = InMemoryVectorIndex()
    index.upsert("first", [1.0, 0.0])
    index.upsert("second", [0.7, 0.3])
    repository = MagicMock()
    repository.find_by_ids_and_scope.return_value = [
        MemoryRecord(memory_id="second", user_id="u", scope="global", payload="2", embedding=[]),
        MemoryRecord(memory_id="first", user_id="u", scope="global", payload="1", embedding=[]),
    ]
    store = MemoryStore(vector_index=index, repository=repository)

    results = store.search("u", [1.0, 0.0], top_k=2)

    assert [r.memory_id for r in results] == ["first", "second"]
    ids, scope_filter = repository.find_by_ids_and_scope.call_args[0]
    assert ids == ["first", "second"]
    assert scope_filter.user_id == "u"


def test_search_skips_repository_when_index_empty():
    repository = MagicMock()
    store = MemoryStore(vector_index=InMemoryVectorIndex(), repository=repository)

    assert store.search("u", [1.0], top_k=5) == []
    repository.find_by_ids_and_scope.assert_not_called()


def test_global_memory_visible_to_other_agent(store):
    memory_id = store.add("user_1", "global", "shared fact", [1.0, 0.0], agent_id="agent_a")

    results = store.search("user_1", [1.0, 0.0], agent_id="agent_b")
    assert [r.memory_id for r in results] == [memory_id]


def test_agent_memory_visible_only_to_its_agent(store):
    memory_id = store.add("user_1", "agent", "private fact", [1.0, 0.0], agent_id="agent_a")

    assert [r.memory_id for r in store.search("user_1", [1.0, 0.0], agent_id="agent_a")] == [memory_id]
    assert store.search("user_1", [1.0, 0.0], agent_id="agent_b") == []
    assert store.search("user_1", [1.0, 0.0]) == []


def test_agent_memory_without_agent_id_visible_only_without_agent_id(store):
    memory_id = store.add("user_1", "agent", "orphaned fact", [1.0, 0.0])

    assert [r.memory_id for r in store.search("user_1", [1.0, 0.0])] == [memory_id]
    assert store.search("user_1", [1.0, 0.0], agent_id="agent_a") == []


def test_other_users_memories_never_returned(store):
    store.add("user_2", "global", "not yours", [1.0, 0.0])
    assert store.search("user_1", [1.0, 0.0], top_k=5) == []


def test_scope_filtering_after_ranking_can_return_fewer_than_top_k(store):
    """Filtered candidates are dropped, not backfilled from lower ranks."""
    for i in range(3):
        store.add("user_1", "agent", f"private {i}", [1.0, 0.01 * i], agent_id="agent_b")
    visible = store.add("user_1", "global", "far but visible", [0.0, 1.0])

    assert store.search("user_1", [1.0, 0.0], top_k=3, agent_id="agent_a") == []
    results = store.search("user_1", [1.0, 0.0], top_k=4, agent_id="agent_a")
    assert [r.memory_id for r in results] == [visible]


@pytest.mark.parametrize("kwargs", [
    {"user_id": "", "query_embedding": [1.0]},
    {"user_id": "user_1", "query_embedding": []},
    {"user_id": "user_1", "query_embedding": [1.0], "top_k": 0},
])
def test_search_rejects_invalid_input(store, kwargs):
    with pytest.raises(MemoryValidationError):
        store.search(**kwargs)


def test_delete_removes_from_both_stores(store):
    memory_id = store.add("user_1", "global", "temporary", [1.0, 0.0])

    assert store.delete("user_1", memory_id) is True

    assert dao.get_memory("user_1", memory_id) is None
    assert memory_id not in store.index
    assert store.search("user_1", [1.0, 0.0]) == []


def test_delete_unknown_memory_reports_success(store):
    store.add("user_1", "global", "keep me", [1.0, 0.0])

    assert store.delete("user_1", "never-created") is True
    assert dao.get_memory_count() == 1
    assert len(store.index) == 1


def test_delete_other_users_memory_keeps_record(store):
    memory_id = store.add("owner", "global", "mine", [1.0, 0.0])

    assert store.delete("intruder", memory_id) is True

    assert dao.get_memory("owner", memory_id) is not None
    # The index drop is unconditional; a rebuild restores the record
    assert memory_id not in store.index
    rebuild_vector_index(store.index)
    assert [r.memory_id for r in store.search("owner", [1.0, 0.0])] == [memory_id]


def test_add_repository_failure_leaves_index_untouched():
    repository = MagicMock()
    repository.insert_memory.side_effect = sqlite3.OperationalError("database is locked")
    store = MemoryStore(vector_index=InMemoryVectorIndex(), repository=repository)

    with pytest.raises(sqlite3.OperationalError):
        store.add("user_1", "global", "p", [1.0, 0.0])

    assert len(store.index) == 0


def test_add_index_failure_keeps_durable_record(temp_db):
    index = MagicMock()
    index.upsert.side_effect = RuntimeError("index unavailable")
    store = MemoryStore(vector_index=index)

    with pytest.raises(RuntimeError):
        store.add("user_1", "global", "durable", [1.0, 0.0])

    assert dao.get_memory_count() == 1
    recovered = InMemoryVectorIndex()
    rebuild_vector_index(recovered)
    assert len(recovered) == 1


def test_delete_repository_failure_still_drops_index_entry():
    index = InMemoryVectorIndex()
    index.upsert("m1", [1.0])
    repository = MagicMock()
    repository.delete_by_owner.side_effect = sqlite3.OperationalError("disk I/O error")
    store = MemoryStore(vector_index=index, repository=repository)

    with pytest.raises(sqlite3.OperationalError):
        store.delete("user_1", "m1")

    assert "m1" not in index


def test_text_operations_use_embedding_provider(temp_db):
    store = MemoryStore(vector_index=InMemoryVectorIndex(), embedding_provider=DeterministicHashEmbedding(dimension=64))
    store.add_text("user_1", "global", "the user prefers window seats")
    target = store.add_text("user_1", "global", "the user is allergic to peanuts")

    results = store.search_text("user_1", "the user is allergic to peanuts", top_k=1)

    assert [r.memory_id for r in results] == [target]
    assert results[0].payload == "the user is allergic to peanuts"
    assert results[0].embedding_model == "hash-64"


def test_text_operations_without_provider(store):
    with pytest.raises(EmbeddingUnavailableError):
        store.add_text("user_1", "global", "some fact")
    with pytest.raises(EmbeddingUnavailableError):
        store.search_text("user_1", "some fact")
    assert dao.get_memory_count() == 0


def test_text_operations_reject_blank_text(temp_db):
    store = MemoryStore(embedding_provider=DeterministicHashEmbedding())
    with pytest.raises(MemoryValidationError):
        store.add_text("user_1", "global", "   ")


@pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), float("-inf")])
def test_add_rejects_non_finite_embedding(store, bad_value):
    with pytest.raises(MemoryValidationError):
        store.add("user_1", "global", "p", [bad_value, 1.0])

    assert dao.get_memory_count() == 0
    assert len(store.index) == 0


def test_search_rejects_non_finite_query(store):
    store.add("user_1", "global", "p", [1.0, 0.0])

    with pytest.raises(MemoryValidationError):
        store.search("user_1", [float("nan"), 1.0])


def test_non_finite_vector_cannot_disturb_other_users_ranking(store):
    store.add("user_2", "global", "B", [0.0, 1.0])
    with pytest.raises(MemoryValidationError):
        store.add("user_2", "global", "NAN", [float("nan"), 1.0])
    a = store.add("user_1", "global", "A", [1.0, 0.0])
    c = store.add("user_1", "global", "C", [0.9, 0.1])

    assert [r.memory_id for r in store.search("user_1", [1.0, 0.0], top_k=2)] == [a, c]


@pytest.mark.parametrize("top_k", [True, False, 2.0, "3"])
def test_search_rejects_non_integer_top_k(store, top_k):
    with pytest.raises(MemoryValidationError):
        store.search("user_1", [1.0, 0.0], top_k=top_k)
