"""Embedding client — batched, throttled LiteLLM embeddings.

Policy:
- Each input is truncated to ``max_input_chars`` characters before it is sent.
  This is a character budget, not a token count; 8 000 characters keeps
  text-embedding-3-small comfortably under its 8 191-token input limit.
- ``embed_many`` sends ``batch_size`` texts per request, strictly one request
  at a time, sleeping ``batch_delay`` seconds between requests (not after the
  last one).
- Any failed request aborts the call with ``EmbeddingFailure`` carrying the
  offset of the failed batch. Nothing is retried here beyond LiteLLM's own
  ``num_retries``.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import litellm
import structlog

from contextor.errors import ConfigurationError, EmbeddingFailure

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

logger = structlog.get_logger(__name__)

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
}


@dataclass
class EmbeddingConfig:
    """Configuration for embedding generation."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 100
    max_input_chars: int = 8_000
    batch_delay: float = 1.0
    num_retries: int = 3


def validate_api_key(model: str) -> None:
    """Check that the API key env var required by *model*'s provider is set.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        ConfigurationError: If the required key is missing from the environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)
    if env_var is None:
        return
    if not os.getenv(env_var):
        raise ConfigurationError(
            f"No API key found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class EmbeddingClient:
    """Turn text into fixed-dimension vectors with one configured model.

    Args:
        config: Model, dimensions and batching policy.
        sleep: Callable used for the inter-batch pause (injectable for tests).
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or EmbeddingConfig()
        if self.config.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        validate_api_key(self.config.model)
        self._sleep = sleep

    def embed_one(self, text: str) -> list[float]:
        """Embed a single text."""
        return self._request([text], offset=0)[0]

    def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts* in order, one request per batch.

        Raises:
            EmbeddingFailure: On the first failed batch; ``offset`` is the index
                of that batch's first text.
        """
        size = self.config.batch_size
        vectors: list[list[float]] = []
        for offset in range(0, len(texts), size):
            if offset:
                self._sleep(self.config.batch_delay)
            batch = list(texts[offset:offset + size])
            vectors.extend(self._request(batch, offset=offset))
            logger.debug(
                "embedding_batch_done",
                offset=offset,
                batch=len(batch),
                total=len(texts),
            )
        return vectors

    def truncate(self, text: str) -> str:
        return text[: self.config.max_input_chars]

    def _request(self, batch: list[str], offset: int) -> list[list[float]]:
        try:
        # Providers without a configurable output size drop `dimensions`.
            response = litellm.embedding(
                model=self.config.model,
                input=[self.truncate(t) for t in batch],
                dimensions=self.config.dimensions,
                drop_params=True,
                num_retries=self.config.num_retries,
            )
        except Exception as exc:
            raise EmbeddingFailure(
                f"Embedding request failed for batch at offset {offset}: {exc}",
                offset=offset,
            ) from exc

        data = list(response.data)
        if len(data) != len(batch):
            raise EmbeddingFailure(
                f"Embedding response for batch at offset {offset} has {len(data)} "
                f"vectors, expected {len(batch)}",
                offset=offset,
            )
        # Providers tag each vector with its input index; fall back to list order.
        data.sort(key=lambda item: _field(item, "index", 0))
        vectors = [list(_field(item, "embedding")) for item in data]
        for vector in vectors:
            if len(vector) != self.config.dimensions:
                raise EmbeddingFailure(
                    f"Model '{self.config.model}' returned {len(vector)} dimensions, "
                    f"expected {self.config.dimensions}",
                    offset=offset,
                )
        return vectors


def _field(item: object, name: str, default: object = None) -> object:
    """Read *name* from a dict-like or attribute-style response item."""
    if isinstance(item, dict):
        return item.get(name, default)
    try:
        return item[name]  # type: ignore[index]
    except (KeyError, TypeError):
        return getattr(item, name, default)
