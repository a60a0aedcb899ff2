"""Interactive session state: append-only transcript plus one pending attachment."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import Protocol

from kb_agent.application.attachment import Attachment
from kb_agent.application.dto.route_dto import RouteOutcome
from kb_agent.domain.errors import ValidationError
from kb_agent.domain.models import ROLES, ChatTurn, Role

logger = logging.getLogger(__name__)


class QueryResolver(Protocol):
    def resolve(self, query: str, attachment: Attachment | None = None) -> RouteOutcome: ...


class Transcript:
    """Ordered user/assistant/system turns; turns are never edited or removed."""

    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []

    def append(self, role: Role, text: str) -> ChatTurn:
        if role not in ROLES:
            raise ValidationError(f"unknown role '{role}'")
        turn = ChatTurn(role=role, text=text)
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ChatTurn]:
        return iter(tuple(self._turns))


class ChatSession:
    """One user's sequential conversation with the router.

    The session exclusively owns the pending attachment until a query hands
    it to the router. The lock only covers swapping that reference; no lock
    is held while the router talks to its backends.
    """

    def __init__(self, router: QueryResolver, transcript: Transcript | None = None) -> None:
        self.router = router
        self.transcript = transcript or Transcript()
        self._pending: Attachment | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> Attachment | None:
        return self._pending

    def _take_pending(self) -> Attachment | None:
        with self._lock:
            attachment, self._pending = self._pending, None
        return attachment

    def add_file(self, path: str) -> Attachment:
        """Open ``path`` as the pending attachment, releasing any previous one first."""
        previous = self._take_pending()
        if previous is not None:
            previous.release()
        attachment = Attachment.open(path)
        return self._stage(attachment)

    def attach(self, attachment: Attachment) -> Attachment:
        """Stage an already-open attachment; ownership moves to the session."""
        previous = self._take_pending()
        if previous is not None and previous is not attachment:
            previous.release()
        return self._stage(attachment)

    def _stage(self, attachment: Attachment) -> Attachment:
        with self._lock:
            self._pending = attachment
        self.transcript.append("system", f"File {attachment.name} ready for next query")
        logger.debug("Attachment %s pending", attachment.name)
        return attachment

    def query(self, text: str) -> str:
        """Resolve one query.

        Router errors propagate to the caller and no assistant turn is
        recorded for them; the attachment is released either way.
        """
        self.transcript.append("user", text)
        attachment = self._take_pending()
        try:
            outcome = self.router.resolve(text, attachment)
        finally:
            if attachment is not None:
                attachment.release()
        self.transcript.append("assistant", outcome.response)
        return outcome.response

    def history(self) -> tuple[ChatTurn, ...]:
        return self.transcript.turns

    def close(self) -> None:
        attachment = self._take_pending()
        if attachment is not None:
            attachment.release()

    def __enter__(self) -> ChatSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
