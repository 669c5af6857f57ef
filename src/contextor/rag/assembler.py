"""Context assembler: query → embedding → search → groups → markdown.

States:
  QUERY_RECEIVED → EMBEDDED → SEARCHED → GROUPED → RENDERED
Any embedding or store failure moves to FAILED and propagates; no partial
document is produced.

The two report variants (project overview, code structure) need no search
and read straight from the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import structlog

from contextor.db.gateway import VectorStore
from contextor.db.models import Project, RetrievalResult
from contextor.errors import EmbeddingFailure, StoreError
from contextor.generate.templates import (
    now_iso,
    render_code_summary,
    render_issue_summary,
    render_project_overview,
    render_query_context,
)
from contextor.ingest.embeddings import EmbeddingClient
from contextor.rag.retriever import group_by_source_type

logger = structlog.get_logger(__name__)

CONTEXT_THRESHOLD = 0.6
CONTEXT_LIMIT = 20


class AssemblyState(str, Enum):
    QUERY_RECEIVED = "query_received"
    EMBEDDED = "embedded"
    SEARCHED = "searched"
    GROUPED = "grouped"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass
class QueryContext:
    query: str
    generated: str
    results: list[RetrievalResult] = field(default_factory=list)
    groups: dict[str, list[RetrievalResult]] = field(default_factory=dict)
    markdown: str = ""


class ContextAssembler:
    """Build context documents from the store.

    ``state`` reflects the last ``assemble()`` call.
    """

    def __init__(self, store: VectorStore, embedder: EmbeddingClient) -> None:
        self._store = store
        self._embedder = embedder
        self.state: AssemblyState | None = None

    def assemble(
        self,
        query: str,
        project_id: str | None = None,
        threshold: float = CONTEXT_THRESHOLD,
        limit: int = CONTEXT_LIMIT,
    ) -> QueryContext:
        """Run the query path and return the rendered context.

        Raises:
            EmbeddingFailure: If the query cannot be embedded.
            StoreError: If the similarity search fails.
        """
        self.state = AssemblyState.QUERY_RECEIVED
        context = QueryContext(query=query, generated=now_iso())
        try:
            query_vector = self._embedder.embed_one(query)
            self.state = AssemblyState.EMBEDDED

            context.results = self._store.similarity_search(
                query_vector, project_id=project_id, threshold=threshold, limit=limit
            )
            self.state = AssemblyState.SEARCHED
        except (EmbeddingFailure, StoreError) as exc:
            logger.error("assembly_failed", query=query, state=self.state.value, error=str(exc))
            self.state = AssemblyState.FAILED
            raise

        context.groups = group_by_source_type(context.results)
        self.state = AssemblyState.GROUPED

        context.markdown = render_query_context(query, context.groups, context.generated)
        self.state = AssemblyState.RENDERED
        return context

    def project_overview(self, project: Project) -> str:
        stats = self._store.count_chunks_by_source_type(project.id)
        return render_project_overview(project, stats)

    def code_summary(self, project: Project) -> str | None:
        """Render the per-file code report, or None when the project has no code."""
        chunks = self._store.get_chunks(project.id, source_type="code", order="path")
        if not chunks:
            return None
        return render_code_summary(chunks)

    def issue_summary(self, project: Project) -> str | None:
        chunks = self._store.get_chunks(project.id, source_type="issues", order="recent")
        if not chunks:
            return None
        return render_issue_summary(chunks)
