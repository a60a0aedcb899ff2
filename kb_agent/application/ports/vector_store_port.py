from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

# Import domain model and re-export for convenience
from kb_agent.domain.models import RetrievedPassage

__all__ = ["RetrievedPassage", "VectorStorePort"]


@runtime_checkable
class VectorStorePort(Protocol):
    def upsert(
        self,
        collection: str,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        payloads: Sequence[Mapping[str, object]],
    ) -> None: ...

    def search(
        self,
        collection: str,
        query_vector: Sequence[float],
        top_k: int,
        score_threshold: float | None = None,
    ) -> list[RetrievedPassage]: ...

    def collection_dimension(self, collection: str) -> int | None:
        """Vector size of an existing collection, or None when it does not exist."""
        ...

    def create_collection(self, collection: str, dim: int) -> None: ...
