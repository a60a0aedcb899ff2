from collections.abc import Sequence
from typing import Protocol

from kb_agent.domain.models import Category


class ClassifierPort(Protocol):
    def classify(self, query: str, categories: Sequence[Category]) -> str:
        """Return the raw label the backend picked (validated by the caller)."""
        ...
