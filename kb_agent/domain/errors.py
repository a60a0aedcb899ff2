"""Domain errors (typed) for the routing agent.

Why: Unified error family for the application layer, without infra leaks.
Stage errors keep the input they failed on so the CLI can report it.
"""


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state (caller error)."""


class ConfigurationError(DomainError):
    """Invalid settings or a backend that is not ready at startup."""


class LoadError(DomainError):
    """A document source could not be read or decoded."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"cannot load '{source}': {detail}")
        self.source = source
        self.detail = detail


class ClassificationError(DomainError):
    """Intent classification backend failed (never raised for odd labels)."""

    def __init__(self, query: str, detail: str) -> None:
        super().__init__(f"classification failed for query {query!r}: {detail}")
        self.query = query
        self.detail = detail


class RetrievalError(DomainError):
    """Similarity search failed (after infra errors were mapped)."""

    def __init__(self, query: str, detail: str) -> None:
        super().__init__(f"retrieval failed for query {query!r}: {detail}")
        self.query = query
        self.detail = detail


class IngestError(DomainError):
    """Upserting a document into the knowledge store failed."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"ingest of '{source}' failed: {detail}")
        self.source = source
        self.detail = detail


class MissingAttachmentError(DomainError):
    """Ingest was requested but no document is pending."""

    def __init__(self) -> None:
        super().__init__("no document attached; use /add <path> before asking to update docs")


# Infrastructure-mapped errors
class EmbeddingError(DomainError):
    """Embedding backend failed or is misconfigured."""


class VectorStoreError(DomainError):
    """Vector store backend failed or is misconfigured."""


class LLMError(DomainError):
    """LLM backend failed or is misconfigured."""
