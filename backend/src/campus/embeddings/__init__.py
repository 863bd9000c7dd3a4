"""Text embedding providers."""

from campus.embeddings.provider import (
    EmbeddingProvider,
    LiteLLMEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
)

__all__ = [
    "EmbeddingProvider",
    "LiteLLMEmbeddings",
    "MockEmbeddings",
    "get_embedding_provider",
]
