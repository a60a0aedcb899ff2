from kb_agent.application.ports.embedding_port import EmbeddingPort
from kb_agent.application.ports.llm_port import LLMPort
from kb_agent.application.ports.vector_store_port import VectorStorePort
from kb_agent.application.session import ChatSession
from kb_agent.application.use_cases.classify_intent import LLMIntentClassifier
from kb_agent.application.use_cases.knowledge_store import KnowledgeStore
from kb_agent.application.use_cases.load_documents import DocumentLoaderRegistry
from kb_agent.application.use_cases.retrieve_passages import Retriever
from kb_agent.application.use_cases.route_query import QueryRouter
from kb_agent.config.settings import AppSettings
from kb_agent.domain.errors import ConfigurationError
from kb_agent.domain.services.chunking import TextChunker
from kb_agent.infrastructure.embeddings.hf_sentence_transformers import HFEmbeddingAdapter
from kb_agent.infrastructure.embeddings.openai_embedding_adapter import OpenAIEmbeddingAdapter
from kb_agent.infrastructure.llm.openai_chat_adapter import OLLAMA_BASE_URL, OpenAIChatAdapter
from kb_agent.infrastructure.parsing.loaders import (
    CsvLoaderAdapter,
    PDFTextExtractorAdapter,
    PlainTextLoaderAdapter,
)
from kb_agent.infrastructure.vectorstore.qdrant_adapter import (
    QdrantConfig,
    QdrantVectorStoreAdapter,
)


def _endpoint(settings: AppSettings, provider: str) -> tuple[str | None, str]:
    """Base URL and API key for an OpenAI-compatible provider."""
    if provider == "ollama":
        # Ollama ignores the key, but the client requires a non-empty one
        return settings.llm_base_url or OLLAMA_BASE_URL, settings.llm_api_key or "ollama"
    if provider == "openai":
        if not settings.llm_api_key:
            raise ConfigurationError("provider 'openai' requires llm.api_key / KB_LLM_API_KEY")
        return settings.llm_base_url or None, settings.llm_api_key
    raise ConfigurationError(f"unsupported provider: {provider}")


def build_llm(settings: AppSettings) -> LLMPort:
    base_url, api_key = _endpoint(settings, settings.llm_provider)
    return OpenAIChatAdapter(
        model=settings.llm_model,
        base_url=base_url,
        api_key=api_key,
        timeout_s=settings.llm_timeout_s or None,
    )


def build_embedding(settings: AppSettings) -> EmbeddingPort:
    provider = settings.embedding_provider
    if provider == "huggingface":
        return HFEmbeddingAdapter(
            model_name=settings.embedding_model,
            device=settings.embedding_device,
        )
    base_url, api_key = _endpoint(settings, provider)
    return OpenAIEmbeddingAdapter(
        model=settings.embedding_model,
        base_url=base_url,
        api_key=api_key,
        timeout_s=settings.llm_timeout_s or None,
    )


def build_vector_store(settings: AppSettings) -> VectorStorePort:
    return QdrantVectorStoreAdapter(
        QdrantConfig(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key or None,
            timeout_s=settings.qdrant_timeout_s,
        )
    )


def build_loader_registry() -> DocumentLoaderRegistry:
    plain = PlainTextLoaderAdapter()
    return DocumentLoaderRegistry(
        default=plain,
        loaders={
            ".txt": plain,
            ".md": plain,
            ".csv": CsvLoaderAdapter(),
            ".pdf": PDFTextExtractorAdapter(),
        },
    )


def build_chunker(settings: AppSettings) -> TextChunker:
    return TextChunker.of(settings.chunk_size, settings.chunk_overlap)


def build_knowledge_store(
    settings: AppSettings,
    embedding: EmbeddingPort | None = None,
    vector_store: VectorStorePort | None = None,
) -> KnowledgeStore:
    return KnowledgeStore(
        embedding=embedding or build_embedding(settings),
        vector_store=vector_store or build_vector_store(settings),
        collection=settings.collection,
        create_missing=settings.create_collection,
    )


def build_router(
    settings: AppSettings,
    llm: LLMPort | None = None,
    embedding: EmbeddingPort | None = None,
    vector_store: VectorStorePort | None = None,
) -> QueryRouter:
    """Wire the router; passed-in adapters replace the configured ones."""
    llm = llm or build_llm(settings)
    embedding = embedding or build_embedding(settings)
    store = build_knowledge_store(settings, embedding=embedding, vector_store=vector_store)
    return QueryRouter(
        classifier=LLMIntentClassifier(llm=llm),
        retriever=Retriever(
            embedding=embedding,
            store=store,
            top_k=settings.top_k,
            score_threshold=settings.score_threshold,
        ),
        store=store,
        llm=llm,
        loaders=build_loader_registry(),
        chunker=build_chunker(settings),
    )


def build_session(
    settings: AppSettings,
    llm: LLMPort | None = None,
    embedding: EmbeddingPort | None = None,
    vector_store: VectorStorePort | None = None,
) -> ChatSession:
    """Build a ready session; fails fast if the collection is unusable.

    Raises:
        ConfigurationError: missing collection or embedding/collection dimension mismatch
    """
    router = build_router(settings, llm=llm, embedding=embedding, vector_store=vector_store)
    router.store.ensure_ready()
    return ChatSession(router)
