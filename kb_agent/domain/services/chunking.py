from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from kb_agent.domain.models import PassageChunk

# Preferred cut points, strongest first: paragraph, line, word.
DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ")


@dataclass(frozen=True)
class ChunkingParams:
    chunk_size: int = 500
    chunk_overlap: int = 50
    separators: tuple[str, ...] = DEFAULT_SEPARATORS

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must satisfy 0 <= overlap < chunk_size")


def _find_cut(text: str, start: int, end: int, p: ChunkingParams) -> int:
    """Cut position in (start + overlap, end]; separators only count in the back half."""
    floor = max(start + p.chunk_overlap, start + p.chunk_size // 2)
    for sep in p.separators:
        if not sep:
            continue
        pos = text.rfind(sep, floor, end)
        if pos != -1:
            return pos + len(sep)
    return end


def split_text(text: str, params: ChunkingParams | None = None) -> list[str]:
    """Split text into windows of at most chunk_size characters.

    Each window after the first starts with the last chunk_overlap characters
    of the previous one. Text is never altered, so windows can be stitched back
    together by dropping the overlap prefix of every window but the first.
    """
    p = params or ChunkingParams()
    if not text.strip():
        return []

    windows: list[str] = []
    start = 0
    n = len(text)
    while True:
        end = start + p.chunk_size
        if end >= n:
            windows.append(text[start:])
            break
        cut = _find_cut(text, start, end, p)
        windows.append(text[start:cut])
        start = cut - p.chunk_overlap
    return windows


@dataclass(frozen=True)
class TextChunker:
    """Configured splitter producing PassageChunks (the unit of storage)."""

    params: ChunkingParams = ChunkingParams()

    @classmethod
    def of(cls, chunk_size: int, chunk_overlap: int) -> TextChunker:
        return cls(ChunkingParams(chunk_size=chunk_size, chunk_overlap=chunk_overlap))

    def split(self, text: str, metadata: Mapping[str, str] | None = None) -> list[PassageChunk]:
        base = dict(metadata or {})
        return [
            PassageChunk(text=window, metadata={**base, "chunk_index": str(i)})
            for i, window in enumerate(split_text(text, self.params))
        ]
