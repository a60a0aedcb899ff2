from collections.abc import Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any, cast

from kb_agent.application.ports.llm_port import ChatMessage, LLMPort, LLMResponse
from kb_agent.domain.errors import LLMError

OLLAMA_BASE_URL = "http://localhost:11434/v1"


@dataclass
class OpenAIChatAdapter(LLMPort):
    """Chat completions over any OpenAI-compatible endpoint (OpenAI, Ollama, vLLM)."""

    model: str
    base_url: str | None = None  # None -> api.openai.com
    api_key: str = "EMPTY"
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        # Defer import of OpenAI to first use to avoid hard dependency in tests
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

    def chat(
        self, messages: Sequence[ChatMessage], temperature: float = 0.2, max_tokens: int = 512
    ) -> LLMResponse:
        try:
            client = self._get_client()
            payload: Any = [{"role": m.role, "content": m.content} for m in messages]
            resp: Any = client.chat.completions.create(
                model=self.model,
                messages=cast(Any, payload),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            choice = resp.choices[0]
            usage = getattr(resp, "usage", None)
            return LLMResponse(
                text=choice.message.content or "",
                finish_reason=choice.finish_reason or "stop",
                usage_tokens=getattr(usage, "total_tokens", None),
            )
        except Exception as ex:  # noqa: BLE001
            # Translate external errors to domain-specific errors
            raise LLMError(f"LLM communication failed: {ex}") from ex
