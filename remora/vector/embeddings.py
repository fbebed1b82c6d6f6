"""
Server-side embedding providers for the text-based memory tools.
Callers that generate their own embeddings never go through this module.
"""

from abc import ABC, abstractmethod
import hashlib


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    model_name: str = "unknown"

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Produces reproducible vectors from text without any model download.
    The vectors carry no semantic meaning: identical text gives identical
    vectors, anything else is effectively random.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension
        self.model_name = f"hash-{dimension}"

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using a hash chain."""
        vector = []
        counter = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode()).hexdigest()
            for i in range(0, len(digest), 8):
                if len(vector) >= self.dimension:
                    break
                value = int(digest[i:i+8], 16)
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            counter += 1

        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to all-MiniLM-L6-v2 (384 dimensions) with normalized output,
    matching the mean-pooled vectors agents typically produce client-side.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            # Loaded on first use: importing torch is slow and optional
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
