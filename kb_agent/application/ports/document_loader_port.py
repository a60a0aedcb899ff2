from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class DocumentPayload:
    """One loadable text record (a whole file, or one CSV row)."""

    text: str
    metadata: Mapping[str, str] = field(default_factory=dict)


class DocumentSource(Protocol):
    """Readable byte source with a discoverable name (file object, attachment)."""

    @property
    def name(self) -> str: ...

    def read(self) -> bytes: ...


class DocumentLoaderPort(Protocol):
    def load(self, source: DocumentSource) -> list[DocumentPayload]: ...
