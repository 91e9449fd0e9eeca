"""Tests for embedding providers."""

import math
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from haskify.config import Settings
from haskify.rag.embeddings import (
    EmbeddingError,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    get_embedding_provider,
)


@pytest.mark.asyncio
async def test_hashing_embedder_is_deterministic_and_normalized() -> None:
    embedder = HashingEmbeddingProvider(dimensions=32)

    first, second, empty = await embedder.embed(["for loops in Python", "for loops in Python", "!!!"])

    assert first == second
    assert len(first) == 32
    assert math.isclose(math.sqrt(sum(v * v for v in first)), 1.0)
    assert empty == [0.0] * 32


def _embedding_item(index: int, vector: list[float]) -> MagicMock:
    item = MagicMock()
    item.index = index
    item.embedding = vector
    return item


@pytest.mark.asyncio
async def test_openai_embedder_orders_by_index_and_truncates_input() -> None:
    response = MagicMock()
    response.data = [_embedding_item(1, [0.0, 1.0]), _embedding_item(0, [1.0, 0.0])]
    embedder = OpenAIEmbeddingProvider("test_key", dimensions=2, max_chars=5)
    embedder.client = AsyncMock()
    embedder.client.embeddings.create = AsyncMock(return_value=response)

    vectors = await embedder.embed(["abcdefgh", "xy"])

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    kwargs = embedder.client.embeddings.create.call_args.kwargs
    assert kwargs["input"] == ["abcde", "xy"]
    assert kwargs["dimensions"] == 2


@pytest.mark.asyncio
async def test_openai_embedder_wraps_errors() -> None:
    embedder = OpenAIEmbeddingProvider("test_key")
    embedder.client = AsyncMock()
    embedder.client.embeddings.create = AsyncMock(side_effect=OpenAIError("timeout"))

    with pytest.raises(EmbeddingError):
        await embedder.embed(["text"])


@pytest.mark.asyncio
async def test_openai_embedder_rejects_short_response() -> None:
    response = MagicMock()
    response.data = [_embedding_item(0, [1.0])]
    embedder = OpenAIEmbeddingProvider("test_key")
    embedder.client = AsyncMock()
    embedder.client.embeddings.create = AsyncMock(return_value=response)

    with pytest.raises(EmbeddingError):
        await embedder.embed(["a", "b"])


@pytest.mark.asyncio
async def test_openai_embedder_empty_input_skips_call() -> None:
    embedder = OpenAIEmbeddingProvider("test_key")
    embedder.client = AsyncMock()

    assert await embedder.embed([]) == []
    embedder.client.embeddings.create.assert_not_called()


def test_get_embedding_provider_selects_by_key() -> None:
    assert isinstance(get_embedding_provider(Settings(_env_file=None)), HashingEmbeddingProvider)  # type: ignore[call-arg]
    settings = Settings(_env_file=None, openai_api_key="sk-test")  # type: ignore[call-arg]
    assert isinstance(get_embedding_provider(settings), OpenAIEmbeddingProvider)


@pytest.mark.asyncio
async def test_openai_embedder_sends_large_inputs_in_batches() -> None:
    def respond(**kwargs: object) -> MagicMock:
        inputs = kwargs["input"]
        assert isinstance(inputs, list)
        response = MagicMock()
        response.data = [_embedding_item(i, [float(text)]) for i, text in enumerate(inputs)]
        return response

    embedder = OpenAIEmbeddingProvider("test_key", batch_size=2)
    embedder.client = AsyncMock()
    embedder.client.embeddings.create = AsyncMock(side_effect=respond)

    vectors = await embedder.embed(["1", "2", "3", "4", "5"])

    assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]
    batches = [c.kwargs["input"] for c in embedder.client.embeddings.create.call_args_list]
    assert batches == [["1", "2"], ["3", "4"], ["5"]]


def test_embeddings_do_not_use_chat_base_url() -> None:
    settings = Settings(  # type: ignore[call-arg]
        _env_file=None,
        openai_api_key="sk-test",
        openai_base_url="https://openrouter.ai/api/v1",
        embedding_base_url="https://embeddings.example.com/v1",
    )

    provider = get_embedding_provider(settings)

    assert isinstance(provider, OpenAIEmbeddingProvider)
    assert str(provider.client.base_url).startswith("https://embeddings.example.com/v1")
    assert Settings(_env_file=None).embedding_base_url is None  # type: ignore[call-arg]
