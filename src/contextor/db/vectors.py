"""Embedding (de)serialization for the document_chunks.embedding column.

Vectors are stored as JSON text, which sqlite-vec's ``vec_distance_cosine``
accepts directly.
"""

from __future__ import annotations

import json
import math

from contextor.errors import StoreError

EMBEDDING_DIMENSIONS = 1536


def encode_embedding(embedding: list[float], dimensions: int) -> str:
    """Validate *embedding* against *dimensions* and return its JSON form.

    Raises:
        StoreError: On a dimension mismatch or a non-finite / all-zero vector.
    """
    if len(embedding) != dimensions:
        raise StoreError(
            f"Embedding has {len(embedding)} dimensions; store expects {dimensions}."
        )
    values = [float(v) for v in embedding]
    if not all(math.isfinite(v) for v in values):
        raise StoreError("Embedding contains non-finite values.")
    # cosine distance is undefined for the zero vector
    if not any(values):
        raise StoreError("Embedding is the zero vector.")
    return json.dumps(values)


def decode_embedding(raw: str | None) -> list[float] | None:
    """Return the vector stored in *raw*, or None for a chunk without one."""
    if raw is None:
        return None
    return json.loads(raw)
