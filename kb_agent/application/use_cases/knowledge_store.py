from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from kb_agent.application.ports.embedding_port import EmbeddingPort
from kb_agent.application.ports.vector_store_port import VectorStorePort
from kb_agent.domain.errors import (
    ConfigurationError,
    DomainError,
    EmbeddingError,
    ValidationError,
    VectorStoreError,
)
from kb_agent.domain.models import PassageChunk, RetrievedPassage

logger = logging.getLogger(__name__)

_POINT_NAMESPACE = uuid.UUID("6f1c7c4e-2b8a-4d0e-9a57-3f5d2c1b8e90")
_DIMENSION_PROBE = "dimension probe"


def chunk_point_id(chunk: PassageChunk) -> str:
    """Deterministic point id: re-upserting the same chunk overwrites it."""
    source = chunk.metadata.get("source", "")
    index = chunk.metadata.get("chunk_index", "")
    row = chunk.metadata.get("row", "")
    return str(uuid.uuid5(_POINT_NAMESPACE, f"{source}\x1f{row}\x1f{index}\x1f{chunk.text}"))


@dataclass
class KnowledgeStore:
    """Durable collection of embedded chunks.

    Upsert is all-or-nothing from the caller's view: every embedding is
    computed before the single write request, and point ids are deterministic,
    so a failed batch is retried as a whole without duplicates.
    """

    embedding: EmbeddingPort
    vector_store: VectorStorePort
    collection: str
    create_missing: bool = False

    def ensure_ready(self) -> int:
        """Check the collection exists with the embedder's dimensionality.

        Returns:
            The vector dimensionality in use.

        Raises:
            ConfigurationError: backend unreachable, collection missing
                (and creation disabled) or dimensionality mismatch.
        """
        try:
            dim = len(self.embedding.embed_query(_DIMENSION_PROBE))
            existing = self.vector_store.collection_dimension(self.collection)
            if existing is None:
                if not self.create_missing:
                    raise ConfigurationError(
                        f"collection '{self.collection}' does not exist; create it "
                        "or enable create_collection"
                    )
                self.vector_store.create_collection(self.collection, dim)
                logger.info("Created collection %s (dim=%d)", self.collection, dim)
            elif existing != dim:
                raise ConfigurationError(
                    f"collection '{self.collection}' has dimension {existing}, "
                    f"embedder produces {dim}"
                )
        except ConfigurationError:
            raise
        except DomainError as ex:
            raise ConfigurationError(f"knowledge store not ready: {ex}") from ex
        logger.info("Knowledge store ready: collection=%s dim=%d", self.collection, dim)
        return dim

    def upsert(self, chunks: Sequence[PassageChunk]) -> int:
        if not chunks:
            return 0
        texts = [c.text for c in chunks]
        try:
            vectors = self.embedding.embed_texts(texts)
        except EmbeddingError:
            raise
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"embedding failed: {ex}") from ex
        if len(vectors) != len(chunks):
            raise EmbeddingError(f"expected {len(chunks)} vectors, got {len(vectors)}")

        ids = [chunk_point_id(c) for c in chunks]
        payloads = [{"text": c.text, "metadata": dict(c.metadata)} for c in chunks]
        self.vector_store.upsert(self.collection, ids, vectors, payloads)
        logger.info("Upserted %d chunks into %s", len(chunks), self.collection)
        return len(chunks)

    def search(
        self, query_vector: Sequence[float], top_k: int, threshold: float
    ) -> list[RetrievedPassage]:
        if top_k <= 0:
            raise ValidationError("top_k must be > 0")
        try:
            hits = self.vector_store.search(
                self.collection, query_vector, top_k, score_threshold=threshold
            )
        except VectorStoreError:
            raise
        except Exception as ex:  # noqa: BLE001
            raise VectorStoreError(f"vector search failed: {ex}") from ex
        ranked = sorted((h for h in hits if h.score >= threshold), key=lambda h: -h.score)
        return ranked[:top_k]
