from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from kb_agent.application.ports.classifier_port import ClassifierPort
from kb_agent.application.ports.llm_port import LLMPort
from kb_agent.domain.errors import ClassificationError
from kb_agent.domain.models import Category
from kb_agent.domain.services.prompting import build_classification_prompt

logger = logging.getLogger(__name__)


@dataclass
class LLMIntentClassifier(ClassifierPort):
    """Pick one category via a single model completion.

    The completion is returned raw; an unexpected label is a valid answer
    ("no confident match") and is left to the caller to interpret.
    """

    llm: LLMPort
    temperature: float = 0.0
    max_tokens: int = 16

    def classify(self, query: str, categories: Sequence[Category]) -> str:
        prompt = build_classification_prompt(query, categories)
        try:
            label = self.llm.generate(
                prompt, temperature=self.temperature, max_tokens=self.max_tokens
            )
        except Exception as ex:  # noqa: BLE001
            logger.warning("Classification backend failed: %s", ex)
            raise ClassificationError(query, str(ex)) from ex
        logger.debug("Classified %r as %r", query, label)
        return label
