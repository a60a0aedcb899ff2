from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass(frozen=True)
class LLMResponse:
    text: str
    finish_reason: str = "stop"
    usage_tokens: int | None = None


@runtime_checkable
class LLMPort(Protocol):
    """Text completion backend shared by intent classification and answering."""

    def chat(
        self, messages: Sequence[ChatMessage], temperature: float = 0.2, max_tokens: int = 512
    ) -> LLMResponse: ...

    def generate(self, prompt: str, temperature: float = 0.2, max_tokens: int = 512) -> str:
        """Complete one fully rendered prompt and return the text as produced.

        The result is not trimmed or post-processed here; callers decide
        whether to normalize it (labels) or pass it through (answers).
        """
        reply = self.chat(
            [ChatMessage(role="user", content=prompt)],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return reply.text
