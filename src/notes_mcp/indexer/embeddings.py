"""Embedding generation with a lazily loaded, process-wide model."""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Literal

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "nomic-ai/nomic-embed-text-v1"
DEFAULT_EMBEDDING_DIMENSIONS = 768

# nomic-embed-text was trained with task instruction prefixes
EmbeddingRole = Literal["search_query", "search_document"]
QUERY_ROLE: EmbeddingRole = "search_query"
DOCUMENT_ROLE: EmbeddingRole = "search_document"

ModelFactory = Callable[[str], Any]


def load_sentence_transformer(model_name: str) -> Any:
    """Load a sentence-transformers model (mean pooling is part of its config)."""
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name, trust_remote_code=True)


def normalize(vector: np.ndarray) -> np.ndarray:
    """L2-normalize a vector; a zero vector is returned unchanged."""
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


class Embedder:
    """
    Embedding cache around a single model instance.

    The model is constructed on first use. Construction is guarded by a lock,
    so concurrent first calls from several threads (including asyncio worker
    threads) load the weights exactly once.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        model_factory: ModelFactory | None = None,
    ):
        """
        Args:
            model_name: Model identifier passed to the factory
            dimensions: Expected vector length; must match the index
            model_factory: Callable building the model from its name.
                Defaults to loading a SentenceTransformer.
        """
        self.model_name = model_name
        self.dimensions = dimensions
        self._model_factory = model_factory or load_sentence_transformer
        self._model: Any | None = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def get_model(self) -> Any:
        """Get or initialize the embedding model."""
        if self._model is not None:
            return self._model

        with self._lock:
            if self._model is None:
                logger.info("Loading embedding model %s (first time only)...", self.model_name)
                start = time.perf_counter()
                self._model = self._model_factory(self.model_name)
                logger.debug(
                    "Embedding model %s initialized in %d ms",
                    self.model_name,
                    (time.perf_counter() - start) * 1000,
                )
            return self._model

    def encode(self, text: str, role: EmbeddingRole | None = None) -> np.ndarray:
        """
        Embed a single text.

        Args:
            text: Text to embed
            role: Optional task instruction; prepended as "<role>: "

        Returns:
            L2-normalized float32 vector of length `dimensions`.
        """
        model = self.get_model()
        prefix = f"{role}: " if role else ""

        start = time.perf_counter()
        raw = model.encode([f"{prefix}{text}"], normalize_embeddings=True)
        vector = normalize(np.asarray(raw, dtype=np.float32).reshape(-1))
        logger.debug(
            "Embedding generation (using %s) took: %d ms",
            self.model_name,
            (time.perf_counter() - start) * 1000,
        )

        if vector.shape[0] != self.dimensions:
            raise ValueError(
                f"Model {self.model_name} produced {vector.shape[0]}-dimensional "
                f"vectors, expected {self.dimensions}"
            )
        return vector

    async def embed(self, text: str, role: EmbeddingRole | None = None) -> np.ndarray:
        """Embed a single text without blocking the event loop."""
        return await asyncio.to_thread(self.encode, text, role)


_embedder: Embedder | None = None
_embedder_lock = threading.Lock()


def get_embedder(
    model_name: str = DEFAULT_EMBEDDING_MODEL,
    dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
) -> Embedder:
    """Get the process-wide embedder instance."""
    global _embedder
    with _embedder_lock:
        if _embedder is None:
            _embedder = Embedder(model_name=model_name, dimensions=dimensions)
        elif _embedder.model_name != model_name:
            logger.warning(
                "Embedder already created for %s, ignoring request for %s",
                _embedder.model_name,
                model_name,
            )
        return _embedder


def reset_embedder() -> None:
    """Reset the process-wide embedder (useful for testing)."""
    global _embedder
    with _embedder_lock:
        _embedder = None
