"""Domain models for the contextor store."""

from __future__ import annotations

from dataclasses import dataclass, field

SOURCE_TYPES: tuple[str, ...] = ("code", "docs", "issues", "design", "config")


@dataclass
class Project:
    id: str
    name: str
    description: str | None = None
    tech_stack: list[str] = field(default_factory=list)
    repository_url: str | None = None
    settings: dict = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Chunk:
    """One retrievable segment of a source document.

    ``path`` is the document path, suffixed with ``#chunk-<n>`` when the
    document produced more than one chunk. ``contextual_content`` is reserved
    for an enriched variant of ``content`` and is not populated by ingestion.
    """

    project_id: str
    source_type: str
    path: str
    content: str
    metadata: dict = field(default_factory=dict)
    embedding: list[float] | None = None
    contextual_content: str | None = None
    id: str | None = None  # set on upsert; None for unsaved chunks
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        if self.source_type not in SOURCE_TYPES:
            raise ValueError(
                f"Unknown source type {self.source_type!r}; expected one of {SOURCE_TYPES}"
            )


@dataclass
class RetrievalResult:
    """A chunk returned by similarity search with its score in [0, 1]."""

    chunk: Chunk
    similarity: float


@dataclass
class KnowledgeContext:
    """Audit record of a rendered context document (never read by retrieval)."""

    project_id: str
    context_type: str
    title: str
    content: str
    file_path: str
    tags: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: str | None = None
