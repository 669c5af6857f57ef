"""Ingestion pipeline: sources → splitter → embedding client → vector store.

One project per run. Failures are per document (read, embed) or per chunk
(store); each is logged, recorded in the report and skipped, and the run
carries on. Nothing skipped is retried within the same run.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from contextor.db.gateway import VectorStore
from contextor.db.models import Project
from contextor.errors import EmbeddingFailure, StoreError
from contextor.ingest.base import BaseSource, Document
from contextor.ingest.embeddings import EmbeddingClient
from contextor.ingest.splitter import TextSplitter

logger = structlog.get_logger(__name__)


@dataclass
class ProjectRequest:
    """Project attributes supplied for an ingestion run.

    ``None`` / empty values leave an existing project's attribute unchanged.
    """

    name: str
    description: str | None = None
    tech_stack: list[str] = field(default_factory=list)
    repository_url: str | None = None
    settings: dict = field(default_factory=dict)


@dataclass
class IngestFailure:
    path: str
    stage: str  # read | embed | store
    message: str


@dataclass
class IngestReport:
    project: Project
    created: bool = False
    documents: int = 0
    chunks_stored: int = 0
    failures: list[IngestFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class IngestPipeline:
    """Drive documents from *sources* into *store* for one project.

    Args:
        store: Vector store gateway.
        embedder: Embedding client (batches and throttles its own requests).
        splitter: Text splitter.
        document_batch_size: Documents processed between pauses.
        batch_delay: Pause, in seconds, after every ``document_batch_size``
            documents. Defaults to the embedder's inter-batch delay.
        sleep: Injectable sleep.
        on_document: Optional progress callback ``(document, chunks_stored)``.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingClient,
        splitter: TextSplitter,
        document_batch_size: int = 50,
        batch_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_document: Callable[[Document, int], None] | None = None,
    ) -> None:
        if document_batch_size < 1:
            raise ValueError("document_batch_size must be >= 1")
        self._store = store
        self._embedder = embedder
        self._splitter = splitter
        self._document_batch_size = document_batch_size
        self._batch_delay = (
            embedder.config.batch_delay if batch_delay is None else batch_delay
        )
        self._sleep = sleep
        self._on_document = on_document

    def ensure_project(self, request: ProjectRequest) -> tuple[Project, bool]:
        """Return ``(project, created)``, creating or updating *request.name*."""
        project = self._store.get_project(request.name)
        if project is None:
            project = self._store.create_project(
                name=request.name,
                description=request.description,
                tech_stack=request.tech_stack,
                repository_url=request.repository_url,
                settings=request.settings,
            )
            logger.info("project_created", project=project.name, project_id=project.id)
            return project, True

        changed = False
        if request.description and request.description != project.description:
            project.description = request.description
            changed = True
        if request.tech_stack and request.tech_stack != project.tech_stack:
            project.tech_stack = list(request.tech_stack)
            changed = True
        if request.repository_url and request.repository_url != project.repository_url:
            project.repository_url = request.repository_url
            changed = True
        if request.settings:
            project.settings = {**project.settings, **request.settings}
            changed = True
        if changed:
            project = self._store.update_project(project)
            logger.info("project_updated", project=project.name, project_id=project.id)
        return project, False

    def run(self, request: ProjectRequest, sources: Iterable[BaseSource]) -> IngestReport:
        """Ingest every document of every source into the project *request* names."""
        project, created = self.ensure_project(request)
        report = IngestReport(project=project, created=created)

        for source in sources:
            for document in source.list_documents(project):
                if report.documents and report.documents % self._document_batch_size == 0:
                    self._sleep(self._batch_delay)
                report.documents += 1
                stored = self._ingest_document(project, document, report)
                report.chunks_stored += stored
                if self._on_document is not None:
                    self._on_document(document, stored)
            for failure in source.errors:
                report.failures.append(IngestFailure(failure.path, "read", failure.message))

        logger.info(
            "ingest_finished",
            project=project.name,
            documents=report.documents,
            chunks=report.chunks_stored,
            failures=len(report.failures),
        )
        return report

    def _ingest_document(self, project: Project, document: Document, report: IngestReport) -> int:
        chunks = self._splitter.chunk_document(project.id, document)
        if not chunks:
            return 0

        try:
            vectors = self._embedder.embed_many([c.content for c in chunks])
        except EmbeddingFailure as exc:
            logger.warning(
                "document_skipped",
                path=document.path,
                stage="embed",
                offset=exc.offset,
                error=str(exc),
            )
            report.failures.append(IngestFailure(document.path, "embed", str(exc)))
            return 0

        stored = 0
        for chunk, vector in zip(chunks, vectors):
            chunk.embedding = vector
            try:
                self._store.upsert_chunk(chunk)
            except StoreError as exc:
                logger.warning("chunk_skipped", path=chunk.path, stage="store", error=str(exc))
                report.failures.append(IngestFailure(chunk.path, "store", str(exc)))
                continue
            stored += 1
        return stored
