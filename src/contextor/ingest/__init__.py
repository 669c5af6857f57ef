"""contextor ingest pipeline — sources, splitter, embedding client."""

from contextor.ingest.airtable import AirtableSource
from contextor.ingest.base import BaseSource, Document
from contextor.ingest.embeddings import EmbeddingClient, EmbeddingConfig
from contextor.ingest.git_source import GitSource
from contextor.ingest.pipeline import IngestPipeline, IngestReport, ProjectRequest
from contextor.ingest.splitter import TextSplitter

__all__ = [
    "AirtableSource",
    "BaseSource",
    "Document",
    "EmbeddingClient",
    "EmbeddingConfig",
    "GitSource",
    "IngestPipeline",
    "IngestReport",
    "ProjectRequest",
    "TextSplitter",
]
