"""Application ports package.

Re-exports the ports the use cases depend on.
"""

from kb_agent.application.ports.classifier_port import ClassifierPort
from kb_agent.application.ports.document_loader_port import (
    DocumentLoaderPort,
    DocumentPayload,
    DocumentSource,
)
from kb_agent.application.ports.embedding_port import EmbeddingPort
from kb_agent.application.ports.llm_port import ChatMessage, LLMPort, LLMResponse
from kb_agent.application.ports.vector_store_port import RetrievedPassage, VectorStorePort

__all__ = [
    "ClassifierPort",
    "DocumentLoaderPort",
    "DocumentPayload",
    "DocumentSource",
    "EmbeddingPort",
    "LLMPort",
    "ChatMessage",
    "LLMResponse",
    "RetrievedPassage",
    "VectorStorePort",
]
