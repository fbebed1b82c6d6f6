import pytest

from remora.core.db import init_db


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point DB_PATH at a fresh SQLite file for one test."""
    db_path = str(tmp_path / "test_memory.db")
    monkeypatch.setenv("DB_PATH", db_path)
    init_db()
    return db_path
