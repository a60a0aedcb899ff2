from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from kb_agent.application.ports.document_loader_port import (
    DocumentLoaderPort,
    DocumentPayload,
    DocumentSource,
)
from kb_agent.domain.models import PassageChunk
from kb_agent.domain.services.chunking import TextChunker


def extension_of(name: str) -> str:
    return os.path.splitext(name)[1].lower()


@dataclass(frozen=True)
class DocumentLoaderRegistry:
    """Extension -> loader mapping with a designated default.

    Built once by the composition root; unknown extensions fall back to the
    default loader instead of failing.
    """

    default: DocumentLoaderPort
    loaders: Mapping[str, DocumentLoaderPort] = field(default_factory=dict)

    def resolve(self, name: str) -> DocumentLoaderPort:
        return self.loaders.get(extension_of(name), self.default)

    def records(self, source: DocumentSource) -> list[DocumentPayload]:
        return self.resolve(source.name).load(source)

    def load(self, source: DocumentSource) -> str:
        """Whole document as raw text (records separated by blank lines)."""
        return "\n\n".join(r.text for r in self.records(source))

    def load_and_split(self, source: DocumentSource, chunker: TextChunker) -> list[PassageChunk]:
        base = {"source": os.path.basename(source.name) or source.name}
        chunks: list[PassageChunk] = []
        for record in self.records(source):
            chunks.extend(chunker.split(record.text, {**base, **record.metadata}))
        return chunks
