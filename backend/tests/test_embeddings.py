"""Embedding provider tests."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from litellm.exceptions import APIConnectionError, ServiceUnavailableError, Timeout

from campus.config import Config
from campus.embeddings.provider import (
    LiteLLMEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
)
from campus.errors import EmbeddingUnavailable


@pytest.fixture
def mock_aembedding():
    with patch("campus.embeddings.provider.aembedding", new_callable=AsyncMock) as mock:
        mock.return_value = SimpleNamespace(data=[{"embedding": [0.1, 0.2, 0.3]}])
        yield mock


async def test_embed_returns_vector(mock_aembedding):
    provider = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")

    vector = await provider.embed("placement tips")

    assert vector == [0.1, 0.2, 0.3]
    kwargs = mock_aembedding.call_args.kwargs
    assert kwargs["model"] == "text-embedding-3-small"
    assert kwargs["input"] == ["placement tips"]


async def test_embed_reads_object_items(mock_aembedding):
    mock_aembedding.return_value = SimpleNamespace(data=[SimpleNamespace(embedding=[1, 2])])
    provider = LiteLLMEmbeddings(provider="ollama", model="nomic-embed-text", endpoint="http://o")

    vector = await provider.embed("text")

    assert vector == [1.0, 2.0]
    assert mock_aembedding.call_args.kwargs["model"] == "ollama/nomic-embed-text"
    assert mock_aembedding.call_args.kwargs["api_base"] == "http://o"


@pytest.mark.parametrize("text", ["", "  \n "])
async def test_blank_text_is_unavailable(mock_aembedding, text):
    provider = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")

    with pytest.raises(EmbeddingUnavailable):
        await provider.embed(text)

    mock_aembedding.assert_not_called()


async def test_provider_error_is_unavailable(mock_aembedding):
    mock_aembedding.side_effect = APIConnectionError(
        message="Connection refused", llm_provider="openai", model="text-embedding-3-small"
    )
    provider = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")

    with pytest.raises(EmbeddingUnavailable):
        await provider.embed("text")


@pytest.mark.parametrize(
    "error",
    [
        ServiceUnavailableError(message="overloaded", llm_provider="openai", model="m"),
        Timeout(message="timed out", model="m", llm_provider="openai"),
    ],
)
async def test_unavailable_or_slow_provider_is_unavailable(mock_aembedding, error):
    mock_aembedding.side_effect = error
    provider = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")

    with pytest.raises(EmbeddingUnavailable) as exc_info:
        await provider.embed("text")

    assert exc_info.value.__cause__ is error


async def test_empty_response_is_unavailable(mock_aembedding):
    mock_aembedding.return_value = SimpleNamespace(data=[])
    provider = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")

    with pytest.raises(EmbeddingUnavailable):
        await provider.embed("text")


async def test_mock_embeddings_are_deterministic():
    provider = MockEmbeddings(dimensions=40)

    first = await provider.embed("same text")
    second = await provider.embed("same text")
    other = await provider.embed("other text")

    assert first == second
    assert first != other
    assert len(first) == 40
    assert all(-1.0 <= x <= 1.0 for x in first)


async def test_mock_embeddings_reject_blank_text():
    with pytest.raises(EmbeddingUnavailable):
        await MockEmbeddings().embed(" ")


def test_get_embedding_provider(tmp_path):
    settings = Config(
        data_dir=tmp_path,
        active_provider="openai",
        embedding_model="text-embedding-3-large",
        openai_api_key="sk-test",
    )

    provider = get_embedding_provider(settings)

    assert isinstance(provider, LiteLLMEmbeddings)
    assert provider.model == "text-embedding-3-large"
    assert provider.api_key == "sk-test"
    assert isinstance(get_embedding_provider(settings, use_mock=True), MockEmbeddings)


def test_mock_backend_setting_selects_mock_embeddings(tmp_path):
    settings = Config(data_dir=tmp_path, active_provider="openai", embedding_backend="mock")

    assert settings.use_mock_embeddings
    assert isinstance(get_embedding_provider(settings), MockEmbeddings)
    assert isinstance(get_embedding_provider(settings, use_mock=False), LiteLLMEmbeddings)
