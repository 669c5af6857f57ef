"""Vector store contract the ingest and retrieval paths depend on.

Each call is atomic on its own; callers never group calls into transactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from contextor.db.models import Chunk, KnowledgeContext, Project, RetrievalResult


class VectorStore(ABC):
    """Persistence + nearest-neighbour query over chunks.

    ``similarity_search`` scores are ``1 - cosine_distance(query, embedding)``
    and only results with ``score > threshold`` are returned, best first.
    """

    dimensions: int

    @abstractmethod
    def get_project(self, name: str) -> Project | None:
        """Return the project called *name*, or None."""

    @abstractmethod
    def create_project(
        self,
        name: str,
        description: str | None = None,
        tech_stack: list[str] | None = None,
        repository_url: str | None = None,
        settings: dict | None = None,
    ) -> Project:
        """Insert and return a new project."""

    @abstractmethod
    def update_project(self, project: Project) -> Project:
        """Persist changed attributes of an existing project."""

    @abstractmethod
    def upsert_chunk(self, chunk: Chunk) -> str:
        """Insert or replace the chunk at (project_id, path). Returns its id."""

    @abstractmethod
    def similarity_search(
        self,
        query_vector: list[float],
        project_id: str | None = None,
        threshold: float = 0.7,
        limit: int = 10,
    ) -> list[RetrievalResult]:
        """Return up to *limit* chunks scoring strictly above *threshold*."""

    @abstractmethod
    def get_chunks(
        self,
        project_id: str,
        source_type: str | None = None,
        order: str = "path",
    ) -> list[Chunk]:
        """Return a project's chunks, optionally filtered by source type."""

    @abstractmethod
    def count_chunks_by_source_type(self, project_id: str) -> dict[str, int]:
        """Return ``{source_type: chunk_count}`` for a project."""

    @abstractmethod
    def add_context(self, context: KnowledgeContext) -> str:
        """Record a rendered context document. Returns its id."""
