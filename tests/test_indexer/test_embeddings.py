"""Tests for the embedding cache."""

import threading
import time

import numpy as np
import pytest
from fakes import DIMENSIONS, FakeModel

from notes_mcp.indexer.embeddings import (
    DOCUMENT_ROLE,
    QUERY_ROLE,
    Embedder,
    get_embedder,
    normalize,
    reset_embedder,
)


@pytest.fixture(autouse=True)
def _reset_embedder():
    reset_embedder()
    yield
    reset_embedder()


class TestNormalize:
    def test_unit_length(self):
        vector = normalize(np.array([3.0, 4.0], dtype=np.float32))
        assert np.allclose(vector, [0.6, 0.8])

    def test_zero_vector_unchanged(self):
        vector = normalize(np.zeros(4, dtype=np.float32))
        assert not vector.any()


class TestEmbedder:
    def test_model_loaded_lazily(self, embedder: Embedder, fake_model: FakeModel):
        assert not embedder.is_loaded
        assert embedder.get_model() is fake_model
        assert embedder.is_loaded

    def test_single_flight_load(self):
        loads = []

        def slow_factory(name: str) -> FakeModel:
            loads.append(name)
            time.sleep(0.05)
            return FakeModel()

        embedder = Embedder("fake-model", DIMENSIONS, model_factory=slow_factory)
        barrier = threading.Barrier(8)
        models = []

        def worker():
            barrier.wait()
            models.append(embedder.get_model())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert loads == ["fake-model"]
        assert len(models) == 8
        assert all(model is models[0] for model in models)

    def test_role_prefix(self, embedder: Embedder, fake_model: FakeModel):
        embedder.encode("what do I know?", QUERY_ROLE)
        embedder.encode("note body", DOCUMENT_ROLE)
        embedder.encode("plain")

        assert fake_model.calls == [
            "search_query: what do I know?",
            "search_document: note body",
            "plain",
        ]

    def test_vectors_are_normalized_float32(self, embedder: Embedder):
        vector = embedder.encode("anything")

        assert vector.dtype == np.float32
        assert vector.shape == (DIMENSIONS,)
        assert np.isclose(np.linalg.norm(vector), 1.0)

    def test_deterministic(self, embedder: Embedder):
        assert np.array_equal(embedder.encode("same"), embedder.encode("same"))

    def test_dimension_mismatch_raises(self):
        embedder = Embedder("fake-model", 16, model_factory=lambda name: FakeModel(DIMENSIONS))

        with pytest.raises(ValueError, match="expected 16"):
            embedder.encode("text")

    async def test_embed_matches_encode(self, embedder: Embedder):
        vector = await embedder.embed("async text", DOCUMENT_ROLE)

        assert np.array_equal(vector, embedder.encode("async text", DOCUMENT_ROLE))


class TestGetEmbedder:
    def test_returns_singleton(self):
        assert get_embedder("model-a", 8) is get_embedder("model-a", 8)

    def test_ignores_different_model_name(self, caplog):
        first = get_embedder("model-a", 8)

        second = get_embedder("model-b", 8)

        assert second is first
        assert second.model_name == "model-a"
        assert any("ignoring request for model-b" in r.message for r in caplog.records)

    def test_reset(self):
        first = get_embedder("model-a", 8)
        reset_embedder()
        assert get_embedder("model-a", 8) is not first
