"""Tests for KnowledgeStore (embed-then-upsert, readiness check, ranked search)."""

from collections.abc import Mapping, Sequence

import pytest

from kb_agent.application.use_cases.knowledge_store import KnowledgeStore, chunk_point_id
from kb_agent.domain.errors import (
    ConfigurationError,
    EmbeddingError,
    ValidationError,
    VectorStoreError,
)
from kb_agent.domain.models import PassageChunk, RetrievedPassage


class FakeEmbedding:
    """Two-dimensional deterministic embeddings."""

    def __init__(self, fail: bool = False, drop_one: bool = False) -> None:
        self.fail = fail
        self.drop_one = drop_one
        self.calls: list[list[str]] = []

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding backend down")
        vectors = [[float(len(t)), 1.0] for t in texts]
        return vectors[:-1] if self.drop_one else vectors

    def embed_query(self, text: str) -> list[float]:
        return [1.0, 0.0]


class FakeVectorStore:
    """In-memory store keyed by point id."""

    def __init__(self, dims: dict[str, int] | None = None, hits=None, fail=None) -> None:
        self.dims = dict(dims or {})
        self.points: dict[str, tuple[list[float], dict]] = {}
        self.upsert_calls = 0
        self.hits: list[RetrievedPassage] = list(hits or [])
        self.fail = fail

    def collection_dimension(self, collection: str) -> int | None:
        if self.fail is not None:
            raise self.fail
        return self.dims.get(collection)

    def create_collection(self, collection: str, dim: int) -> None:
        self.dims[collection] = dim

    def upsert(
        self,
        collection: str,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        payloads: Sequence[Mapping[str, object]],
    ) -> None:
        if self.fail is not None:
            raise self.fail
        self.upsert_calls += 1
        for i, v, p in zip(ids, vectors, payloads):
            self.points[i] = (list(v), dict(p))

    def search(self, collection, query_vector, top_k, score_threshold=None):
        if self.fail is not None:
            raise self.fail
        return list(self.hits)


def _chunks() -> list[PassageChunk]:
    return [
        PassageChunk(text="first", metadata={"source": "a.txt", "chunk_index": "0"}),
        PassageChunk(text="second", metadata={"source": "a.txt", "chunk_index": "1"}),
    ]


def test_upsert_empty_is_noop():
    vs = FakeVectorStore()
    store = KnowledgeStore(FakeEmbedding(), vs, "kb")
    assert store.upsert([]) == 0
    assert vs.upsert_calls == 0


def test_upsert_embeds_everything_then_writes_once():
    emb = FakeEmbedding()
    vs = FakeVectorStore()
    store = KnowledgeStore(emb, vs, "kb")

    assert store.upsert(_chunks()) == 2
    assert emb.calls == [["first", "second"]]
    assert vs.upsert_calls == 1
    payloads = [p for _, p in vs.points.values()]
    assert {"text": "first", "metadata": {"source": "a.txt", "chunk_index": "0"}} in payloads


def test_reupsert_overwrites_same_points():
    vs = FakeVectorStore()
    store = KnowledgeStore(FakeEmbedding(), vs, "kb")
    store.upsert(_chunks())
    store.upsert(_chunks())
    assert len(vs.points) == 2


def test_point_ids_are_deterministic_and_distinct():
    a, b = _chunks()
    assert chunk_point_id(a) == chunk_point_id(PassageChunk(a.text, dict(a.metadata)))
    assert chunk_point_id(a) != chunk_point_id(b)


def test_embedding_failure_writes_nothing():
    vs = FakeVectorStore()
    store = KnowledgeStore(FakeEmbedding(fail=True), vs, "kb")
    with pytest.raises(EmbeddingError):
        store.upsert(_chunks())
    assert vs.upsert_calls == 0


def test_vector_count_mismatch_is_rejected():
    vs = FakeVectorStore()
    store = KnowledgeStore(FakeEmbedding(drop_one=True), vs, "kb")
    with pytest.raises(EmbeddingError):
        store.upsert(_chunks())
    assert vs.points == {}


def test_ensure_ready_accepts_matching_collection():
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(dims={"kb": 2}), "kb")
    assert store.ensure_ready() == 2


def test_ensure_ready_missing_collection_fails_by_default():
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(), "kb")
    with pytest.raises(ConfigurationError, match="does not exist"):
        store.ensure_ready()


def test_ensure_ready_creates_collection_when_enabled():
    vs = FakeVectorStore()
    store = KnowledgeStore(FakeEmbedding(), vs, "kb", create_missing=True)
    assert store.ensure_ready() == 2
    assert vs.dims == {"kb": 2}


def test_ensure_ready_dimension_mismatch():
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(dims={"kb": 768}), "kb")
    with pytest.raises(ConfigurationError, match="768"):
        store.ensure_ready()


def test_ensure_ready_wraps_backend_errors():
    vs = FakeVectorStore(fail=VectorStoreError("connection refused"))
    store = KnowledgeStore(FakeEmbedding(), vs, "kb")
    with pytest.raises(ConfigurationError) as info:
        store.ensure_ready()
    assert isinstance(info.value.__cause__, VectorStoreError)


def test_search_filters_sorts_and_limits():
    hits = [
        RetrievedPassage(text="low", score=0.5),
        RetrievedPassage(text="mid", score=0.75),
        RetrievedPassage(text="top", score=0.95),
        RetrievedPassage(text="high", score=0.85),
    ]
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(hits=hits), "kb")
    result = store.search([1.0, 0.0], top_k=2, threshold=0.7)
    assert [p.text for p in result] == ["top", "high"]


def test_search_rejects_non_positive_top_k():
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(), "kb")
    with pytest.raises(ValidationError):
        store.search([1.0, 0.0], top_k=0, threshold=0.0)


def test_search_maps_unexpected_errors():
    store = KnowledgeStore(FakeEmbedding(), FakeVectorStore(fail=RuntimeError("boom")), "kb")
    with pytest.raises(VectorStoreError):
        store.search([1.0, 0.0], top_k=3, threshold=0.0)
