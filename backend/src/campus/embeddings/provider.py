"""Text embedding providers.

Embeddings turn post text and search queries into vectors so posts can be
compared by cosine similarity. The production provider goes through LiteLLM,
the same gateway the chat client uses; the mock provider is deterministic and
needs no network.
"""

import hashlib
import logging
import time
from typing import Any, Protocol

from litellm import aembedding

from campus.config import Config
from campus.errors import EmbeddingUnavailable
from campus.llm.client import PROVIDER_ERRORS, extract_error_details, get_model_string

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that can turn text into a vector."""

    async def embed(self, text: str) -> list[float]:
        """Embed a single text. Raises EmbeddingUnavailable on failure."""
        ...


class LiteLLMEmbeddings:
    """Embedding provider backed by litellm.aembedding."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
    ):
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint

    async def embed(self, text: str) -> list[float]:
        """Embed text.

        Args:
            text: Text to embed. Must contain non-whitespace characters.

        Returns:
            The embedding vector.

        Raises:
            EmbeddingUnavailable: For blank text or when the provider fails.
        """
        if not text or not text.strip():
            raise EmbeddingUnavailable("Cannot embed empty text")

        kwargs: dict[str, Any] = {
            "model": get_model_string(self.provider, self.model),
            "input": [text],
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint

        start_time = time.perf_counter()
        try:
            response = await aembedding(**kwargs)
        except PROVIDER_ERRORS as e:
            logger.warning(
                "Embedding request failed after %dms: %s (%s)",
                int((time.perf_counter() - start_time) * 1000),
                e,
                extract_error_details(e),
            )
            raise EmbeddingUnavailable(f"Embedding failed: {e}") from e

        data = response.data
        if not data:
            raise EmbeddingUnavailable("Embedding provider returned no vectors")

        item = data[0]
        vector = item["embedding"] if isinstance(item, dict) else item.embedding
        if not vector:
            raise EmbeddingUnavailable("Embedding provider returned an empty vector")
        return [float(x) for x in vector]


class MockEmbeddings:
    """Deterministic pseudo-embeddings derived from a hash of the text.

    Identical text always maps to the identical vector. Not semantically
    meaningful; for tests and offline development only.
    """

    def __init__(self, dimensions: int = 64):
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingUnavailable("Cannot embed empty text")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeated = digest * (self.dimensions // len(digest) + 1)
        return [(byte - 127.5) / 127.5 for byte in repeated[: self.dimensions]]


def get_embedding_provider(settings: Config, use_mock: bool | None = None) -> EmbeddingProvider:
    """Build the embedding provider for the configured LLM provider.

    Args:
        settings: Application settings.
        use_mock: Return MockEmbeddings instead of a network provider. Defaults
            to the EMBEDDING_BACKEND=mock setting.
    """
    if use_mock is None:
        use_mock = settings.use_mock_embeddings
    if use_mock:
        logger.info("Using mock embeddings; similarity scores are not semantic")
        return MockEmbeddings()
    return LiteLLMEmbeddings(
        provider=settings.llm_provider,
        model=settings.embedding_model,
        api_key=settings.llm_api_key,
        endpoint=settings.llm_endpoint,
    )
