"""Context file generation for a project.

With a query: one ``query-context-<epoch ms>.md`` file, also recorded in the
``knowledge_contexts`` table. Without: ``project-overview.md`` plus
``code-summary.md`` / ``issues-summary.md`` when the project has such chunks.

Files go to ``<output_path>/.claude/`` when an output path is given, else to
``<base_dir>/contexts/<project id>/``.
"""

from __future__ import annotations

import time
from pathlib import Path

import structlog

from contextor.db.gateway import VectorStore
from contextor.db.models import KnowledgeContext, Project
from contextor.generate.writer import validate_output_path, write_output
from contextor.ingest.embeddings import EmbeddingClient
from contextor.rag.assembler import CONTEXT_LIMIT, CONTEXT_THRESHOLD, ContextAssembler

logger = structlog.get_logger(__name__)

_ASSISTANT_DIR = ".claude"


class ContextGenerator:
    """Write context documents for a project to disk.

    Args:
        store: Vector store gateway.
        embedder: Embedding client (only used for query contexts).
        base_dir: Knowledge-base root used when no output path is given.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingClient | None,
        base_dir: Path | str = "knowledge-base",
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._base_dir = Path(base_dir)

    def output_dir(self, project: Project, output_path: str | Path | None = None) -> Path:
        if output_path is not None:
            return validate_output_path(output_path) / _ASSISTANT_DIR
        return validate_output_path(self._base_dir) / "contexts" / project.id

    def generate(
        self,
        project: Project,
        query: str | None = None,
        output_path: str | Path | None = None,
        threshold: float = CONTEXT_THRESHOLD,
        limit: int = CONTEXT_LIMIT,
    ) -> list[Path]:
        """Write the context files for *project* and return their paths.

        Raises:
            OutputPathError: If the output directory escapes the working directory.
            ValueError: If a query is given without an embedding client.
            EmbeddingFailure, StoreError: On a failed query context.
        """
        out_dir = self.output_dir(project, output_path)
        if query:
            written = self._query_context(project, query, out_dir, threshold, limit)
            return [written] if written else []
        return self._project_reports(project, out_dir)

    def _assembler(self) -> ContextAssembler:
        if self._embedder is None:
            raise ValueError("An embedding client is required for query contexts")
        return ContextAssembler(self._store, self._embedder)

    def _query_context(
        self,
        project: Project,
        query: str,
        out_dir: Path,
        threshold: float,
        limit: int,
    ) -> Path | None:
        context = self._assembler().assemble(
            query, project_id=project.id, threshold=threshold, limit=limit
        )
        if not context.results:
            logger.info("no_relevant_chunks", query=query, project=project.name)
            return None

        path = out_dir / f"query-context-{int(time.time() * 1000)}.md"
        write_output(path, context.markdown)
        self._store.add_context(
            KnowledgeContext(
                project_id=project.id,
                context_type="query",
                title=f"Context for: {query}",
                content=context.markdown,
                file_path=str(path),
                tags=["query", "generated"],
            )
        )
        logger.info("context_written", path=str(path), results=len(context.results))
        return path

    def _project_reports(self, project: Project, out_dir: Path) -> list[Path]:
        assembler = ContextAssembler(self._store, self._embedder)  # type: ignore[arg-type]
        reports = {
            "project-overview.md": assembler.project_overview(project),
            "code-summary.md": assembler.code_summary(project),
            "issues-summary.md": assembler.issue_summary(project),
        }
        written: list[Path] = []
        for name, content in reports.items():
            if content is None:
                continue
            path = out_dir / name
            write_output(path, content)
            logger.info("context_written", path=str(path))
            written.append(path)
        return written
