"""Prompt rendering and label parsing for the routing agent.

Why: Keep all prompt text and the "is this a known category" check in one
pure module, so use cases only orchestrate ports.
"""

from __future__ import annotations

from collections.abc import Sequence

from kb_agent.domain.errors import ValidationError
from kb_agent.domain.models import (
    Category,
    Intent,
    KnownIntent,
    PassageChunk,
    RetrievedPassage,
    UnrecognizedIntent,
)

_LABEL_STRIP = " \t\r\n`'\""


def build_classification_prompt(query: str, categories: Sequence[Category]) -> str:
    if not categories:
        raise ValidationError("at least one category is required for classification")
    listing = "\n".join(f"{c.name}: {c.description}" for c in categories)
    return (
        "Please classify the following text into one of these categories. "
        "Only return the category name.\n\n"
        f"Categories:\n{listing}\n\n"
        f"Text: {query}\n\n"
        "Category:"
    )


def normalize_label(raw: str) -> str:
    label = raw.strip(_LABEL_STRIP)
    if label.endswith("."):
        label = label[:-1].strip(_LABEL_STRIP)
    return label


def parse_intent(raw: str, categories: Sequence[Category]) -> Intent:
    """Map a raw completion onto the closed category set."""
    label = normalize_label(raw)
    for category in categories:
        if category.name.lower() == label.lower():
            return KnownIntent(category)
    return UnrecognizedIntent(label)


def format_context(
    passages: Sequence[RetrievedPassage], attached: Sequence[PassageChunk] = ()
) -> str:
    entries: list[str] = []
    for p in passages:
        source = p.metadata.get("source", "knowledge base")
        entries.append(f"[{len(entries) + 1}] ({source}, score={p.score:.3f}) {p.text}")
    for c in attached:
        source = c.metadata.get("source", "attachment")
        entries.append(f"[{len(entries) + 1}] ({source}, attached) {c.text}")
    return "\n\n".join(entries)


def build_answer_prompt(
    query: str,
    passages: Sequence[RetrievedPassage],
    attached: Sequence[PassageChunk] = (),
) -> str:
    ctx = format_context(passages, attached) or "(no documents found)"
    return (
        "You are a knowledge assistant. Answer the user query based on the "
        "documents below.\n\n"
        f"Documents:\n{ctx}\n\n"
        f"Query: {query}\n\n"
        "Answer:"
    )
