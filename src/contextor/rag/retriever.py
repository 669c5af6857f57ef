"""Dense retrieval: embed the query, ask the store for its nearest chunks.

Score = 1 - cosine_distance(query, chunk). Only scores strictly above the
threshold come back, best first, at most ``limit`` of them.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from contextor.db.gateway import VectorStore
from contextor.db.models import RetrievalResult
from contextor.ingest.embeddings import EmbeddingClient

logger = structlog.get_logger(__name__)

SEARCH_THRESHOLD = 0.6
SEARCH_LIMIT = 10


@dataclass
class RetrieverConfig:
    """Similarity search parameters.

    Attributes:
        threshold: Minimum similarity (exclusive) in [0, 1].
        limit: Maximum number of results.
        project_id: Restrict the search to one project (None = all projects).
    """

    threshold: float = SEARCH_THRESHOLD
    limit: int = SEARCH_LIMIT
    project_id: str | None = None


def search(
    query: str,
    store: VectorStore,
    embedder: EmbeddingClient,
    config: RetrieverConfig | None = None,
) -> list[RetrievalResult]:
    """Return the chunks most similar to *query*, best first.

    Raises:
        EmbeddingFailure: If the query cannot be embedded.
        StoreError: If the store query fails.
    """
    config = config or RetrieverConfig()
    query_vector = embedder.embed_one(query)
    results = store.similarity_search(
        query_vector,
        project_id=config.project_id,
        threshold=config.threshold,
        limit=config.limit,
    )
    logger.info(
        "search_done",
        query=query,
        project_id=config.project_id,
        threshold=config.threshold,
        results=len(results),
    )
    return results


def group_by_source_type(results: list[RetrievalResult]) -> dict[str, list[RetrievalResult]]:
    """Partition *results* by source type.

    Groups appear in order of their best result; each group keeps the input's
    descending-score order.
    """
    groups: dict[str, list[RetrievalResult]] = {}
    for result in results:
        groups.setdefault(result.chunk.source_type, []).append(result)
    return groups
