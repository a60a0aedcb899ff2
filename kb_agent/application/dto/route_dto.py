from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kb_agent.domain.models import Intent

if TYPE_CHECKING:
    from kb_agent.application.attachment import Attachment


@dataclass(frozen=True)
class RouteOutcome:
    """
    Result of resolving one query.

    - response:             text shown to the user (answer, confirmation or fallback)
    - intent:               parsed classifier label
    - consumed_attachment:  the attachment passed in, already released (or None);
                            the caller drops its own reference to it
    """

    response: str
    intent: Intent
    consumed_attachment: Attachment | None = None
