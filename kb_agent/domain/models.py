# kb_agent/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["user", "assistant", "system"]
ROLES: tuple[Role, ...] = ("user", "assistant", "system")


@dataclass(frozen=True)
class Category:
    """A labelled intent the classifier may choose."""

    name: str
    description: str


@dataclass(frozen=True)
class ChatTurn:
    role: Role
    text: str

    def render(self) -> str:
        return f"{self.role.capitalize()}: {self.text}"


@dataclass(frozen=True)
class PassageChunk:
    """
    Unit of storage and retrieval produced by the chunker.

    - text:      the chunk text, exactly as cut from the source
    - metadata:  string mapping (source, chunk_index, row, ...)
    """

    text: str
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RetrievedPassage:
    """Per-query search hit; never persisted."""

    text: str
    score: float
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class KnownIntent:
    category: Category

    @property
    def name(self) -> str:
        return self.category.name


@dataclass(frozen=True)
class UnrecognizedIntent:
    raw_label: str

    @property
    def name(self) -> str:
        return self.raw_label


Intent = KnownIntent | UnrecognizedIntent


# Category names understood by the query router.
ANSWER_FROM_KNOWLEDGE = "answer_from_knowledge"
INGEST_DOCUMENT = "ingest_document"
OTHER = "other"

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(
        name=ANSWER_FROM_KNOWLEDGE,
        description="Questions that should be answered from the stored documents",
    ),
    Category(
        name=INGEST_DOCUMENT,
        description="Requests to add, update, or manage the stored documents",
    ),
    Category(
        name=OTHER,
        description="Other questions or requests that don't fit into the above categories",
    ),
)
