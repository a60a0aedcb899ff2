"""OpenAI-compatible chat/embedding adapters with a fake client (no network)."""

from types import SimpleNamespace

import pytest

from kb_agent.application.ports.llm_port import ChatMessage
from kb_agent.domain.errors import EmbeddingError, LLMError
from kb_agent.infrastructure.embeddings import openai_embedding_adapter
from kb_agent.infrastructure.embeddings.openai_embedding_adapter import OpenAIEmbeddingAdapter
from kb_agent.infrastructure.llm import openai_chat_adapter
from kb_agent.infrastructure.llm.openai_chat_adapter import OLLAMA_BASE_URL, OpenAIChatAdapter


class FakeCompletions:
    def __init__(self, content="answer_from_knowledge", fail=False) -> None:
        self.content = content
        self.fail = fail
        self.calls: list[dict] = []

    def create(self, **kwargs):
        if self.fail:
            raise RuntimeError("HTTP 500")
        self.calls.append(kwargs)
        choice = SimpleNamespace(
            message=SimpleNamespace(content=self.content), finish_reason="stop"
        )
        return SimpleNamespace(choices=[choice], usage=SimpleNamespace(total_tokens=7))


class FakeEmbeddings:
    def __init__(self, fail=False) -> None:
        self.fail = fail
        self.batches: list[list[str]] = []

    def create(self, model, input):
        if self.fail:
            raise RuntimeError("model not found")
        self.batches.append(list(input))
        # Out-of-order on purpose; the adapter sorts by index.
        data = [
            SimpleNamespace(index=i, embedding=[float(len(t)), 1.0]) for i, t in enumerate(input)
        ]
        return SimpleNamespace(data=list(reversed(data)))


class FakeOpenAIModule:
    def __init__(self) -> None:
        self.kwargs: dict = {}

    def OpenAI(self, **kwargs):  # noqa: N802
        self.kwargs = kwargs
        return SimpleNamespace(
            chat=SimpleNamespace(completions=FakeCompletions()),
            embeddings=FakeEmbeddings(),
        )


def _chat_adapter(completions: FakeCompletions) -> OpenAIChatAdapter:
    adapter = OpenAIChatAdapter(model="llama3.2:latest", base_url=OLLAMA_BASE_URL)
    adapter._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return adapter


def test_chat_returns_completion_text():
    completions = FakeCompletions(content="Hello!")
    resp = _chat_adapter(completions).chat([ChatMessage(role="user", content="Hi")])
    assert resp.text == "Hello!"
    assert resp.usage_tokens == 7
    assert completions.calls[0]["messages"] == [{"role": "user", "content": "Hi"}]


def test_generate_sends_single_user_message():
    completions = FakeCompletions(content="ingest_document")
    text = _chat_adapter(completions).generate("Category:", temperature=0.0, max_tokens=16)
    assert text == "ingest_document"
    call = completions.calls[0]
    assert call["temperature"] == 0.0
    assert call["max_tokens"] == 16
    assert call["model"] == "llama3.2:latest"


def test_none_content_becomes_empty_string():
    assert _chat_adapter(FakeCompletions(content=None)).generate("x") == ""


def test_chat_errors_become_llm_error():
    with pytest.raises(LLMError, match="HTTP 500"):
        _chat_adapter(FakeCompletions(fail=True)).generate("x")


def test_client_built_lazily_with_endpoint(monkeypatch):
    fake = FakeOpenAIModule()
    monkeypatch.setattr(openai_chat_adapter, "import_module", lambda name: fake)
    adapter = OpenAIChatAdapter(
        model="m", base_url=OLLAMA_BASE_URL, api_key="ollama", timeout_s=5.0
    )
    assert fake.kwargs == {}
    adapter.generate("hi")
    assert fake.kwargs == {"api_key": "ollama", "base_url": OLLAMA_BASE_URL, "timeout": 5.0}


def test_embeddings_are_batched_and_ordered():
    embeddings = FakeEmbeddings()
    adapter = OpenAIEmbeddingAdapter(model="nomic-embed-text:latest", batch_size=2)
    adapter._client = SimpleNamespace(embeddings=embeddings)

    vectors = adapter.embed_texts(["a", "bb", "ccc"])

    assert embeddings.batches == [["a", "bb"], ["ccc"]]
    assert vectors == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0]]


def test_embed_query_returns_single_vector():
    adapter = OpenAIEmbeddingAdapter(model="m")
    adapter._client = SimpleNamespace(embeddings=FakeEmbeddings())
    assert adapter.embed_query("four") == [4.0, 1.0]


def test_embedding_errors_are_mapped():
    adapter = OpenAIEmbeddingAdapter(model="m")
    adapter._client = SimpleNamespace(embeddings=FakeEmbeddings(fail=True))
    with pytest.raises(EmbeddingError, match="model not found"):
        adapter.embed_texts(["x"])


def test_embedding_client_without_base_url(monkeypatch):
    fake = FakeOpenAIModule()
    monkeypatch.setattr(openai_embedding_adapter, "import_module", lambda name: fake)
    OpenAIEmbeddingAdapter(model="text-embedding-3-small", api_key="sk-test").embed_query("x")
    assert fake.kwargs == {"api_key": "sk-test"}
