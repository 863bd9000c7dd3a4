"""Embedding-based candidate retrieval shared by search and chat."""

import logging
from typing import Optional

from campus.constants.search import ALL_SCOPES
from campus.embeddings.provider import EmbeddingProvider
from campus.errors import DimensionMismatch, EmbeddingUnavailable, ProviderUnavailable
from campus.posts.store import PostStore
from campus.retrieval.schemas import ScoredCandidate
from campus.retrieval.similarity import cosine_similarity

logger = logging.getLogger(__name__)


class CandidateRetriever:
    """Ranks embedded posts by cosine similarity to a query.

    Ordering is total: similarity descending, then newest first, then id
    descending, so equal inputs always give the same list.
    """

    def __init__(self, store: PostStore, embeddings: EmbeddingProvider, default_top_k: int = 10):
        self._store = store
        self._embeddings = embeddings
        self._default_top_k = default_top_k

    async def embed_query(self, query_text: str) -> list[float]:
        """Embed query text, raising EmbeddingUnavailable on any failure."""
        if not query_text or not query_text.strip():
            raise EmbeddingUnavailable("Cannot embed an empty query")
        try:
            return await self._embeddings.embed(query_text)
        except EmbeddingUnavailable:
            raise
        except ProviderUnavailable as e:
            raise EmbeddingUnavailable(str(e)) from e

    async def retrieve(
        self,
        query_text: str,
        scope: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> list[ScoredCandidate]:
        """Return the top_k posts most similar to the query.

        Args:
            query_text: Free-text query.
            scope: Department to restrict to. None or "General" means all.
            top_k: Maximum candidates returned. Defaults to the configured value.

        Returns:
            Scored candidates in rank order, possibly empty.

        Raises:
            EmbeddingUnavailable: If the query cannot be embedded. No posts are
                read in that case.
            DimensionMismatch: If a stored embedding has a different length.
        """
        limit = self._default_top_k if top_k is None else top_k
        query_vector = await self.embed_query(query_text)

        if scope == ALL_SCOPES:
            scope = None
        documents = self._store.find_embedded(scope)

        candidates = []
        for document in documents:
            assert document.embedding is not None
            try:
                similarity = cosine_similarity(query_vector, document.embedding)
            except DimensionMismatch:
                logger.error(
                    "Post %s embedding does not match the query embedding; re-run the backfill",
                    document.id,
                )
                raise
            candidates.append(ScoredCandidate(document, similarity))

        candidates.sort(
            key=lambda c: (c.similarity, c.document.created_at, c.document.id),
            reverse=True,
        )
        return candidates[: max(limit, 0)]
