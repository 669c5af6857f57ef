"""Recursive character splitter with structure-aware separators.

Strategy:
- Pick the first separator (in priority order) that occurs in the text and
  split on it, keeping the separator at the start of the following piece.
- Greedily merge consecutive pieces into chunks of at most ``chunk_size``
  characters; each new chunk starts with up to ``overlap`` characters carried
  over from the end of the previous one.
- Any piece still larger than ``chunk_size`` is split again with the
  remaining, lower-priority separators. The final ``""`` separator splits
  into single characters, so with the default list only a custom separator
  list can leave an oversized piece, which is then emitted whole.
"""

from __future__ import annotations

import re

from contextor.db.models import Chunk
from contextor.ingest.base import Document

CODE_SEPARATORS: tuple[str, ...] = (
    # declarations
    "\n\nclass ",
    "\n\ndef ",
    "\n\nasync def ",
    "\n\nfunction ",
    "\n\nexport ",
    "\n\nconst ",
    "\n\nlet ",
    "\n\nvar ",
    # comments
    "\n\n# ",
    "\n\n// ",
    "\n\n/*",
    "\n\n*/",
    # layout
    "\n\n",
    "\n",
    " ",
    "",
)

_ORDINAL_RE = re.compile(r"^(?P<base>.*)#chunk-(?P<ordinal>\d+)$", re.DOTALL)


class TextSplitter:
    """Split text into overlapping chunks of at most ``chunk_size`` characters.

    Args:
        chunk_size: Target maximum chunk length in characters.
        overlap: Characters shared between consecutive chunks.
        separators: Priority-ordered separators, most meaningful first.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        overlap: int = 200,
        separators: tuple[str, ...] | list[str] = CODE_SEPARATORS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        if not separators:
            raise ValueError("separators must not be empty")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.separators = list(separators)

    def split(self, text: str) -> list[str]:
        """Return the ordered chunks of *text*.

        Empty or whitespace-only text yields no chunks; text that already fits
        in one chunk is returned unchanged as the only chunk.
        """
        if not text.strip():
            return []
        if len(text) <= self.chunk_size:
            return [text]
        return self._split(text, self.separators)

    def chunk_document(self, project_id: str, document: Document) -> list[Chunk]:
        """Split *document* into Chunk objects named after its path.

        A document that yields one chunk keeps its bare path; otherwise each
        chunk gets ``<path>#chunk-<n>`` with a 1-based ordinal.
        """
        texts = self.split(document.text)
        numbered = len(texts) > 1
        chunks: list[Chunk] = []
        for ordinal, text in enumerate(texts, start=1):
            metadata = dict(document.metadata)
            if document.modified_at:
                metadata.setdefault("last_modified", document.modified_at)
            metadata["chunk_index"] = ordinal
            metadata["chunk_count"] = len(texts)
            chunks.append(
                Chunk(
                    project_id=project_id,
                    source_type=document.source_type,
                    path=chunk_path(document.path, ordinal) if numbered else document.path,
                    content=text,
                    metadata=metadata,
                )
            )
        return chunks

    # ------------------------------------------------------------------
    # Recursive split
    # ------------------------------------------------------------------

    def _split(self, text: str, separators: list[str]) -> list[str]:
        separator = separators[-1]
        remaining: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1:]
                break

        chunks: list[str] = []
        pending: list[str] = []
        for piece in _split_keeping_separator(text, separator):
            if len(piece) <= self.chunk_size:
                pending.append(piece)
                continue
            if pending:
                chunks.extend(self._merge(pending))
                pending = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            elif piece.strip():
                # indivisible unit larger than chunk_size
                chunks.append(piece.strip())
        if pending:
            chunks.extend(self._merge(pending))
        return chunks

    def _merge(self, pieces: list[str]) -> list[str]:
        """Greedily pack *pieces* into chunks, carrying ``overlap`` chars forward."""
        chunks: list[str] = []
        window: list[str] = []
        total = 0
        for piece in pieces:
            size = len(piece)
            if window and total + size > self.chunk_size:
                _append_stripped(chunks, "".join(window))
                while window and (
                    total > self.overlap or total + size > self.chunk_size
                ):
                    total -= len(window.pop(0))
            window.append(piece)
            total += size
        if window:
            _append_stripped(chunks, "".join(window))
        return chunks


# ------------------------------------------------------------------
# Path helpers
# ------------------------------------------------------------------


def chunk_path(path: str, ordinal: int) -> str:
    """Return the origin path of chunk *ordinal* (1-based) of *path*."""
    return f"{path}#chunk-{ordinal}"


def split_ordinal(path: str) -> tuple[str, int]:
    """Split ``file#chunk-3`` into ``("file", 3)``; bare paths are ordinal 1."""
    match = _ORDINAL_RE.match(path)
    if match is None:
        return path, 1
    return match.group("base"), int(match.group("ordinal"))


def _split_keeping_separator(text: str, separator: str) -> list[str]:
    if separator == "":
        return list(text)
    parts = text.split(separator)
    pieces = [parts[0]] + [separator + part for part in parts[1:]]
    return [p for p in pieces if p]


def _append_stripped(chunks: list[str], text: str) -> None:
    stripped = text.strip()
    if stripped:
        chunks.append(stripped)
