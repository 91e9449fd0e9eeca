"""Embedding providers for vector retrieval.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic hashing embedder when no key is present.
"""

import hashlib
import logging
import math
import re
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from haskify.config import Settings

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class EmbeddingError(Exception):
    """Embedding provider call failed (rate limit, timeout, bad response)."""

    pass


class EmbeddingProvider(Protocol):
    """Protocol for embedding provider implementations."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed each text into a fixed-dimension vector.

        Args:
            texts: Strings to embed

        Returns:
            One vector per input, in input order

        Raises:
            EmbeddingError: If the provider call fails
        """
        ...


class HashingEmbeddingProvider:
    """Deterministic feature-hashing embedder (no network, used offline and in tests).

    Each lower-cased alphanumeric token is hashed into one of ``dimensions``
    buckets; the bag of buckets is L2-normalised.
    """

    def __init__(self, dimensions: int = 256, max_chars: int = 8000) -> None:
        self.dimensions = dimensions
        self.max_chars = max_chars

    def _embed_one(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text[: self.max_chars].lower()):
            digest = hashlib.sha1(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimensions
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [self._embed_one(text) for text in texts]


class OpenAIEmbeddingProvider:
    """Embeddings from an OpenAI-compatible ``/embeddings`` endpoint.

    Inputs are sent in slices of ``batch_size`` so large uploads stay under
    the provider's per-request input limit.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        dimensions: int | None = None,
        max_chars: int = 8000,
        batch_size: int = 64,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.dimensions = dimensions
        self.max_chars = max_chars
        self.batch_size = max(1, batch_size)

    async def _embed_batch(self, inputs: list[str]) -> list[list[float]]:
        kwargs: dict[str, object] = {"model": self.model, "input": inputs}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions

        try:
            response = await self.client.embeddings.create(**kwargs)  # type: ignore[arg-type]
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingError(str(e)) from e

        vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        if len(vectors) != len(inputs):
            raise EmbeddingError(
                f"Provider returned {len(vectors)} embeddings for {len(inputs)} inputs"
            )
        return vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        inputs = [text[: self.max_chars] for text in texts]
        vectors: list[list[float]] = []
        for start in range(0, len(inputs), self.batch_size):
            vectors.extend(await self._embed_batch(inputs[start : start + self.batch_size]))
        return vectors


def get_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Factory function to get the embedding provider for the configured key.

    Embeddings go to ``embedding_base_url`` (the OpenAI API when unset), not
    the chat provider's base URL.

    Returns:
        OpenAIEmbeddingProvider if an API key is configured,
        HashingEmbeddingProvider otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI-compatible embedding provider")
        return OpenAIEmbeddingProvider(
            api_key=api_key.get_secret_value(),
            model=settings.embedding_model,
            base_url=settings.embedding_base_url,
            dimensions=settings.embedding_dimensions,
            max_chars=settings.embedding_max_chars,
            batch_size=settings.embedding_batch_size,
        )
    logger.warning("No API key configured, using deterministic hashing embedder")
    return HashingEmbeddingProvider(
        dimensions=settings.embedding_dimensions,
        max_chars=settings.embedding_max_chars,
    )
