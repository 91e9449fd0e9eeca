"""Relevance scoring between a query and material chunks.

Two interchangeable strategies:
- Lexical: count of query terms found as substrings of the chunk text
- Vector: cosine similarity between query and chunk embeddings

Each scorer carries its relevance floor; the retriever drops results
scoring at or below it.
"""

import math
import re
from typing import Protocol

from haskify.config import Settings
from haskify.rag.embeddings import EmbeddingProvider

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
MIN_TERM_LENGTH = 3


def query_terms(query: str) -> list[str]:
    """Normalize a query into lexical search terms.

    Lower-cases, replaces anything other than ``[a-z0-9]`` and whitespace
    with a space, splits, and drops terms shorter than three characters.
    Duplicate terms are kept.
    """
    normalized = _NON_ALNUM_RE.sub(" ", (query or "").lower())
    return [term for term in normalized.split() if len(term) >= MIN_TERM_LENGTH]


def lexical_score(terms: list[str], text: str) -> int:
    """Count the terms occurring anywhere in ``text`` (case-insensitive).

    A bag-of-substrings count: each entry of ``terms`` contributes at most
    one, so a repeated query term counts once per repetition.
    """
    haystack = text.lower()
    return sum(1 for term in terms if term in haystack)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity, defined as 0.0 when either vector has zero norm.

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    # Clamp float drift so the result stays within [-1, 1]
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


class Scorer(Protocol):
    """Scores candidate chunk texts/vectors against a query."""

    mode: str
    floor: float

    async def score(
        self, query: str, texts: list[str], embeddings: list[list[float] | None]
    ) -> list[float]:
        """Return one score per candidate, in candidate order.

        Raises:
            EmbeddingError: If a query embedding is needed and the provider fails
        """
        ...


class LexicalScorer:
    """Keyword-overlap scorer; needs no external provider."""

    mode = "lexical"

    def __init__(self, floor: float = 0.0) -> None:
        self.floor = floor

    async def score(
        self, query: str, texts: list[str], embeddings: list[list[float] | None]
    ) -> list[float]:
        terms = query_terms(query)
        if not terms:
            return [0.0] * len(texts)
        return [float(lexical_score(terms, text)) for text in texts]


class VectorScorer:
    """Cosine-similarity scorer over ingestion-time chunk embeddings.

    The query is embedded fresh on every call; there is no query cache.
    Chunks without a stored embedding score 0.0.
    """

    mode = "vector"

    def __init__(self, embedder: EmbeddingProvider, floor: float = 0.4) -> None:
        self.embedder = embedder
        self.floor = floor

    async def score(
        self, query: str, texts: list[str], embeddings: list[list[float] | None]
    ) -> list[float]:
        if not texts:
            return []
        (query_vector,) = await self.embedder.embed([query])

        scores: list[float] = []
        for vector in embeddings:
            if vector is None or len(vector) != len(query_vector):
                scores.append(0.0)
            else:
                scores.append(cosine_similarity(query_vector, vector))
        return scores


def build_scorer(settings: Settings, embedder: EmbeddingProvider) -> Scorer:
    """Select the scorer for the configured retrieval mode."""
    if settings.retrieval_mode == "vector":
        return VectorScorer(embedder, floor=settings.vector_floor)
    return LexicalScorer(floor=settings.lexical_floor)
