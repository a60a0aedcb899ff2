from collections.abc import Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any

from kb_agent.application.ports.embedding_port import EmbeddingPort
from kb_agent.domain.errors import EmbeddingError


@dataclass
class OpenAIEmbeddingAdapter(EmbeddingPort):
    """Embeddings endpoint of an OpenAI-compatible server (OpenAI or Ollama /v1)."""

    model: str
    base_url: str | None = None
    api_key: str = "EMPTY"
    timeout_s: float | None = None
    batch_size: int = 64

    def __post_init__(self) -> None:
        self._client: Any | None = None

    def _get_client(self) -> Any:
        if self._client is None:
            module = import_module("openai")
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self.timeout_s is not None:
                kwargs["timeout"] = self.timeout_s
            self._client = module.OpenAI(**kwargs)
        return self._client

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        try:
            client = self._get_client()
            for start in range(0, len(texts), self.batch_size):
                batch = list(texts[start : start + self.batch_size])
                resp: Any = client.embeddings.create(model=self.model, input=batch)
                data = sorted(resp.data, key=lambda d: d.index)
                vectors.extend([float(x) for x in d.embedding] for d in data)
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"Embedding texts failed: {ex}") from ex
        return vectors

    def embed_query(self, text: str) -> list[float]:
        vectors = self.embed_texts([text])
        if not vectors:
            raise EmbeddingError("Embedding query returned no vector")
        return vectors[0]
