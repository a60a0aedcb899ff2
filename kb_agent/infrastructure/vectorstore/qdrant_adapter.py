"""Qdrant vector store adapter.

Why: Adapter encapsulates all qdrant-client types and raises only domain
errors; collections are addressed by name on every call.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any

from kb_agent.application.ports.vector_store_port import RetrievedPassage, VectorStorePort
from kb_agent.domain.errors import VectorStoreError


@dataclass
class QdrantConfig:
    """Configuration for Qdrant client connection."""

    url: str
    api_key: str | None = None
    prefer_grpc: bool = False
    timeout_s: int = 30


class QdrantVectorStoreAdapter(VectorStorePort):
    """Qdrant adapter implementing VectorStorePort.

    Why: Encapsulates qdrant-client library and converts exceptions to
         domain errors.
    """

    def __init__(self, cfg: QdrantConfig, client: Any | None = None) -> None:
        """Initialize Qdrant adapter with configuration.

        Args:
            cfg: QdrantConfig with connection parameters
            client: Pre-built client (tests); built from cfg when omitted

        Raises:
            VectorStoreError: If qdrant-client initialization fails
        """
        self._cfg = cfg
        self._client = client if client is not None else self._init_client(cfg)

    def _init_client(self, cfg: QdrantConfig) -> Any:
        try:
            qdrant_client = import_module("qdrant_client")
            return qdrant_client.QdrantClient(
                url=cfg.url,
                api_key=cfg.api_key or None,
                timeout=cfg.timeout_s,
                prefer_grpc=cfg.prefer_grpc,
            )
        except Exception as ex:
            raise VectorStoreError(f"Qdrant init failed: {ex}") from ex

    def collection_dimension(self, collection: str) -> int | None:
        """Vector size of the collection, or None if it does not exist.

        Raises:
            VectorStoreError: On transport failure or named-vector collections
        """
        try:
            if not self._client.collection_exists(collection):
                return None
            info = self._client.get_collection(collection)
        except Exception as ex:
            raise VectorStoreError(f"collection lookup '{collection}': {ex}") from ex
        vectors = info.config.params.vectors
        size = getattr(vectors, "size", None)
        if size is None:
            raise VectorStoreError(
                f"Collection '{collection}' uses named vectors; a single unnamed vector is required"
            )
        return int(size)

    def create_collection(self, collection: str, dim: int) -> None:
        try:
            models = import_module("qdrant_client.models")
            self._client.create_collection(
                collection_name=collection,
                vectors_config=models.VectorParams(size=dim, distance=models.Distance.COSINE),
            )
        except Exception as ex:
            raise VectorStoreError(f"create_collection '{collection}': {ex}") from ex

    def upsert(
        self,
        collection: str,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        payloads: Sequence[Mapping[str, object]],
    ) -> None:
        """Upsert the whole batch in one request.

        Raises:
            VectorStoreError: On length mismatch or any backend failure
        """
        if not (len(ids) == len(vectors) == len(payloads)):
            raise VectorStoreError("ids, vectors and payloads must have equal length")
        try:
            models = import_module("qdrant_client.models")
            points = [
                models.PointStruct(id=ids[i], vector=list(vectors[i]), payload=dict(payloads[i]))
                for i in range(len(ids))
            ]
            self._client.upsert(
                collection_name=collection,
                points=points,
                wait=True,  # Wait for operation to complete
            )
        except Exception as ex:
            raise VectorStoreError(f"upsert: {ex}") from ex

    def search(
        self,
        collection: str,
        query_vector: Sequence[float],
        top_k: int,
        score_threshold: float | None = None,
    ) -> list[RetrievedPassage]:
        """Nearest neighbours of query_vector, highest score first."""
        try:
            response = self._client.query_points(
                collection_name=collection,
                query=list(query_vector),
                limit=top_k,
                score_threshold=score_threshold,
                with_payload=True,
                with_vectors=False,  # Don't return vectors (saves bandwidth)
            )
        except Exception as ex:
            raise VectorStoreError(f"search: {ex}") from ex

        passages = []
        for hit in response.points:
            payload = dict(hit.payload or {})
            metadata = payload.get("metadata") or {}
            passages.append(
                RetrievedPassage(
                    text=str(payload.get("text", "")),
                    score=float(hit.score),
                    metadata={str(k): str(v) for k, v in dict(metadata).items()},
                )
            )
        return passages
