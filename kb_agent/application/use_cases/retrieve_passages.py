from __future__ import annotations

import logging
from dataclasses import dataclass

from kb_agent.application.ports.embedding_port import EmbeddingPort
from kb_agent.application.use_cases.knowledge_store import KnowledgeStore
from kb_agent.domain.errors import RetrievalError, ValidationError
from kb_agent.domain.models import RetrievedPassage

logger = logging.getLogger(__name__)


@dataclass
class Retriever:
    """Top-K similarity search over the knowledge store, threshold applied."""

    embedding: EmbeddingPort
    store: KnowledgeStore
    top_k: int = 4
    score_threshold: float = 0.7

    def retrieve(
        self,
        query: str,
        top_k: int | None = None,
        score_threshold: float | None = None,
    ) -> list[RetrievedPassage]:
        k = self.top_k if top_k is None else top_k
        threshold = self.score_threshold if score_threshold is None else score_threshold
        if k <= 0:
            raise ValidationError("top_k must be > 0")

        try:
            q_vec = self.embedding.embed_query(query)
            passages = self.store.search(q_vec, k, threshold)
        except ValidationError:
            raise
        except Exception as ex:  # noqa: BLE001
            logger.warning("Retrieval backend failed: %s", ex)
            raise RetrievalError(query, str(ex)) from ex

        logger.debug("Retrieved %d passages (k=%d, threshold=%.2f)", len(passages), k, threshold)
        return passages
