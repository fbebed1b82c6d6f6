"""
Configuration for the hybrid memory store.
Values come from environment variables (optionally a .env file).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Version string
VERSION = "1.0.0"

# Search limits
DEFAULT_TOP_K = 5
MAX_TOP_K = 50

# Provenance tag for embeddings supplied by the caller
DEFAULT_EMBEDDING_MODEL = "client"

DEFAULT_DB_PATH = "./data/remora.db"
DEFAULT_EMBED_MODEL_NAME = "all-MiniLM-L6-v2"


def _bool_env(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("true", "1", "yes")


def get_db_path() -> str:
    """Get the SQLite database path. Read on every call so tests can override it."""
    return os.getenv("DB_PATH", DEFAULT_DB_PATH)


def debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return _bool_env("DEBUG", False)


def rebuild_on_startup() -> bool:
    """Check if the vector index should be rebuilt when the app starts."""
    return _bool_env("REBUILD_ON_STARTUP", True)


def mcp_enabled() -> bool:
    """Check if the MCP streamable HTTP endpoint should be mounted."""
    return _bool_env("MCP_ENABLED", True)


def get_embed_provider_name() -> str:
    """Get configured embedding provider name (none|hash|sentence-transformers)."""
    return os.getenv("EMBED_PROVIDER", "none").lower()


def get_embed_model_name() -> str:
    return os.getenv("EMBED_MODEL_NAME", DEFAULT_EMBED_MODEL_NAME)


def get_server_host() -> str:
    return os.getenv("HOST", "0.0.0.0")


def get_server_port() -> int:
    try:
        return int(os.getenv("PORT", "8080"))
    except ValueError:
        return 8080


def get_vector_index():
    """Get the vector index implementation."""
    from ..vector.index import InMemoryVectorIndex
    return InMemoryVectorIndex()


def get_embedding_provider():
    """Get configured embedding provider implementation. Returns None if server-side embedding is disabled."""
    provider = get_embed_provider_name()

    if provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding()
    elif provider in ("sentence-transformers", "sentence_transformers"):
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(get_embed_model_name())
    else:
        return None


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if get_embed_provider_name() not in ("none", "hash", "sentence-transformers", "sentence_transformers"):
        issues.append(f"Invalid EMBED_PROVIDER: {get_embed_provider_name()}")

    port = os.getenv("PORT")
    if port is not None and not port.isdigit():
        issues.append(f"Invalid PORT: {port}")

    return issues
