from __future__ import annotations

import logging
import os
from typing import BinaryIO

from kb_agent.domain.errors import LoadError

logger = logging.getLogger(__name__)


class Attachment:
    """A pending side-input document, exclusively owned by whoever holds it.

    Ownership moves session -> router; the router releases it once the query
    resolves. ``release`` closes the underlying stream exactly once.
    """

    def __init__(self, name: str, stream: BinaryIO) -> None:
        self._name = name
        self._stream = stream
        self._released = False

    @classmethod
    def open(cls, path: str) -> Attachment:
        if not path:
            raise LoadError(path, "please provide a file path")
        try:
            stream = open(path, "rb")  # noqa: SIM115 - closed by release()
        except OSError as ex:
            raise LoadError(path, f"failed to open file: {ex.strerror or ex}") from ex
        return cls(path, stream)

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return os.path.basename(self._name) or self._name

    @property
    def released(self) -> bool:
        return self._released

    def read(self) -> bytes:
        if self._released:
            raise LoadError(self._name, "attachment was already released")
        try:
            if self._stream.seekable():
                self._stream.seek(0)
            return self._stream.read()
        except OSError as ex:
            raise LoadError(self._name, f"read failed: {ex}") from ex

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._stream.close()
        logger.debug("Released attachment %s", self._name)

    def __enter__(self) -> Attachment:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "pending"
        return f"Attachment({self._name!r}, {state})"
