"""Source adapter interface for all contextor document sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import structlog

from contextor.db.models import Project
from contextor.errors import SourceReadError

logger = structlog.get_logger(__name__)


@dataclass
class Document:
    """Raw text pulled from a source, before chunking.

    Attributes:
        text: Full document text.
        source_type: One of code, docs, issues, design, config.
        path: Origin path (file path or record locator).
        modified_at: ISO timestamp of the last modification, when known.
        metadata: Source-specific fields copied onto every chunk.
    """

    text: str
    source_type: str
    path: str
    modified_at: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass
class SourceFailure:
    path: str
    message: str


class BaseSource(ABC):
    """Abstract base for all source adapters.

    Subclasses implement ``discover()`` (cheap: list references) and ``load()``
    (read one reference). ``list_documents()`` ties them together and turns a
    ``SourceReadError`` on one reference into a logged, recorded skip.
    """

    #: Short label used in log events and CLI output.
    name: str = "source"

    def __init__(self) -> None:
        self.errors: list[SourceFailure] = []

    @abstractmethod
    def discover(self, project: Project) -> Iterable[str]:
        """Return references (paths, record ids) for every document to load."""

    @abstractmethod
    def load(self, ref: str) -> Document | None:
        """Read one reference.

        Returns None when the reference holds nothing worth indexing.

        Raises:
            SourceReadError: If the document cannot be read.
        """

    def list_documents(self, project: Project) -> Iterator[Document]:
        """Yield every readable document; unreadable ones land in ``self.errors``."""
        self.errors = []
        try:
            refs = list(self.discover(project))
        except SourceReadError as exc:
            self._record(exc)
            return
        for ref in refs:
            try:
                document = self.load(ref)
            except SourceReadError as exc:
                self._record(exc)
                continue
            if document is not None:
                yield document

    def _record(self, exc: SourceReadError) -> None:
        logger.warning("document_unreadable", source=self.name, path=exc.path, error=str(exc))
        self.errors.append(SourceFailure(path=exc.path, message=str(exc)))
