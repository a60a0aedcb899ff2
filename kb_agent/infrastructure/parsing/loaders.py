from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from importlib import import_module

from kb_agent.application.ports.document_loader_port import (
    DocumentLoaderPort,
    DocumentPayload,
    DocumentSource,
)
from kb_agent.domain.errors import LoadError


def _read_text(source: DocumentSource, encoding: str) -> str:
    try:
        raw = source.read()
    except LoadError:
        raise
    except Exception as ex:  # noqa: BLE001
        raise LoadError(source.name, f"read failed: {ex}") from ex
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as ex:
        raise LoadError(source.name, f"not valid {encoding} text ({ex.reason})") from ex


@dataclass
class PlainTextLoaderAdapter(DocumentLoaderPort):
    encoding: str = "utf-8-sig"

    def load(self, source: DocumentSource) -> list[DocumentPayload]:
        text = _read_text(source, self.encoding).strip()
        return [DocumentPayload(text=text)] if text else []


@dataclass
class CsvLoaderAdapter(DocumentLoaderPort):
    """One record per data row, rendered as ``column: value`` lines."""

    encoding: str = "utf-8-sig"

    def load(self, source: DocumentSource) -> list[DocumentPayload]:
        text = _read_text(source, self.encoding)
        try:
            rows = list(csv.reader(io.StringIO(text, newline="")))
        except csv.Error as ex:
            raise LoadError(source.name, f"CSV parse failed: {ex}") from ex
        if not rows:
            return []

        header, *body = rows
        records: list[DocumentPayload] = []
        for i, row in enumerate(body, start=1):
            if not any(cell.strip() for cell in row):
                continue
            lines = [f"{col}: {val}" for col, val in zip(header, row, strict=False)]
            records.append(DocumentPayload(text="\n".join(lines), metadata={"row": str(i)}))
        return records


@dataclass
class PDFTextExtractorAdapter(DocumentLoaderPort):
    """One record per page with extractable text."""

    def load(self, source: DocumentSource) -> list[DocumentPayload]:
        try:
            pypdf = import_module("pypdf")  # lazy import to keep startup light
        except ImportError as ex:  # pragma: no cover
            raise LoadError(source.name, "pypdf is not installed") from ex

        try:
            data = source.read()
        except LoadError:
            raise
        except Exception as ex:  # noqa: BLE001
            raise LoadError(source.name, f"read failed: {ex}") from ex
        try:
            reader = pypdf.PdfReader(io.BytesIO(data))
            pages = [
                (n, (page.extract_text() or "").strip())
                for n, page in enumerate(reader.pages, start=1)
            ]
        except Exception as ex:  # noqa: BLE001
            raise LoadError(source.name, f"PDF parse failed: {ex}") from ex
        return [DocumentPayload(text=t, metadata={"page": str(n)}) for n, t in pages if t]
