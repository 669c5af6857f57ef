"""Exception taxonomy shared by the ingest and retrieval paths.

  ConfigurationError  missing credential / invalid config; fatal before any work
  SourceReadError     one document unreadable; logged and skipped
  EmbeddingFailure    embedding request failed; aborts the current batch
  StoreError          read or write against the vector store failed
  OutputPathError     output path escapes its allowed base; fatal for generation
"""

from __future__ import annotations


class ContextorError(Exception):
    """Base class for all contextor errors."""


class ConfigurationError(ContextorError, ValueError):
    """Raised when a required credential or config value is missing or invalid."""


class SourceReadError(ContextorError):
    """Raised by a source adapter when a single document cannot be read."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class EmbeddingFailure(ContextorError):
    """Raised when an embedding request fails.

    Attributes:
        offset: Index (into the caller's input list) of the first text in the
            batch that failed.
    """

    def __init__(self, message: str, offset: int = 0) -> None:
        super().__init__(message)
        self.offset = offset


class StoreError(ContextorError):
    """Raised when the vector store rejects a read or write."""


class OutputPathError(ContextorError, ValueError):
    """Raised when an output path escapes the directory it is confined to."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
