# kb_agent/application/use_cases/route_query.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from kb_agent.application.attachment import Attachment
from kb_agent.application.dto.route_dto import RouteOutcome
from kb_agent.application.ports.classifier_port import ClassifierPort
from kb_agent.application.ports.llm_port import LLMPort
from kb_agent.application.use_cases.knowledge_store import KnowledgeStore
from kb_agent.application.use_cases.load_documents import DocumentLoaderRegistry
from kb_agent.application.use_cases.retrieve_passages import Retriever
from kb_agent.domain.errors import IngestError, LLMError, MissingAttachmentError, ValidationError
from kb_agent.domain.models import (
    ANSWER_FROM_KNOWLEDGE,
    DEFAULT_CATEGORIES,
    INGEST_DOCUMENT,
    Category,
    Intent,
    KnownIntent,
)
from kb_agent.domain.services.chunking import TextChunker
from kb_agent.domain.services.prompting import build_answer_prompt, parse_intent

logger = logging.getLogger(__name__)


def unknown_query_message(label: str) -> str:
    return f"Unknown query type: {label}"


def ingested_message(source: str) -> str:
    return f"Docs updated successfully: {source}"


@dataclass
class QueryRouter:
    """
    Application use case orchestrating one query end to end:
    classify -> dispatch (answer / ingest / fallback) -> release attachment.

    The attachment is owned by the router for the duration of ``resolve`` and
    is released on every exit path, including errors and interrupts.
    """

    classifier: ClassifierPort
    retriever: Retriever
    store: KnowledgeStore
    llm: LLMPort
    loaders: DocumentLoaderRegistry
    chunker: TextChunker
    categories: Sequence[Category] = DEFAULT_CATEGORIES
    answer_temperature: float = 0.2
    answer_max_tokens: int = 1024

    def __post_init__(self) -> None:
        if not self.categories:
            raise ValidationError("router needs at least one category")
        self.categories = tuple(self.categories)

    def resolve(self, query: str, attachment: Attachment | None = None) -> RouteOutcome:
        try:
            # Attachment content never enters the classification prompt.
            raw = self.classifier.classify(query, self.categories)
            intent = parse_intent(raw, self.categories)
            response = self._dispatch(query, intent, attachment)
        finally:
            if attachment is not None:
                attachment.release()
        return RouteOutcome(response=response, intent=intent, consumed_attachment=attachment)

    def _dispatch(self, query: str, intent: Intent, attachment: Attachment | None) -> str:
        if isinstance(intent, KnownIntent):
            if intent.name == ANSWER_FROM_KNOWLEDGE:
                logger.info("Routing query to knowledge QA")
                return self.answer(query, attachment)
            if intent.name == INGEST_DOCUMENT:
                logger.info("Routing query to document ingest")
                return self.ingest(attachment)
        logger.info("No handler for query type %r", intent.name)
        return unknown_query_message(intent.name)

    def answer(self, query: str, attachment: Attachment | None = None) -> str:
        # 1) Retrieve stored context
        passages = self.retriever.retrieve(query)

        # 2) Ad-hoc context from the attachment (not persisted)
        attached = []
        if attachment is not None:
            attached = self.loaders.load_and_split(attachment, self.chunker)
            logger.debug("Appending %d attachment chunks as context", len(attached))

        # 3) Grounded generation; the completion is returned verbatim
        prompt = build_answer_prompt(query, passages, attached)
        try:
            return self.llm.generate(
                prompt, temperature=self.answer_temperature, max_tokens=self.answer_max_tokens
            )
        except Exception as ex:  # noqa: BLE001
            logger.warning("Answer generation failed: %s", ex)
            raise LLMError(f"answer generation failed for query {query!r}: {ex}") from ex

    def ingest(self, attachment: Attachment | None) -> str:
        if attachment is None:
            raise MissingAttachmentError()

        # Only the attachment is stored, never the query text.
        chunks = self.loaders.load_and_split(attachment, self.chunker)
        try:
            count = self.store.upsert(chunks)
        except Exception as ex:  # noqa: BLE001
            logger.warning("Upsert of %s failed: %s", attachment.display_name, ex)
            raise IngestError(attachment.display_name, str(ex)) from ex
        if count == 0:
            logger.warning("Attachment %s produced no chunks", attachment.display_name)
        return ingested_message(attachment.display_name)
