"""Ranked semantic search over community posts."""

import logging
from typing import Optional

from campus.constants.search import NOT_INDEXED_MESSAGE
from campus.errors import ValidationError
from campus.posts.store import PostStore
from campus.retrieval.retriever import CandidateRetriever
from campus.search.schemas import SearchHit, SearchResponse

logger = logging.getLogger(__name__)


class RankedSearchService:
    """Turns retrieval candidates into presentable search results.

    Search never writes. Similarity is rounded only for display; ranking
    uses full precision.
    """

    def __init__(
        self,
        store: PostStore,
        retriever: CandidateRetriever,
        default_limit: int = 10,
        max_limit: int = 50,
        similarity_decimals: int = 2,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._similarity_decimals = similarity_decimals

    async def search(
        self,
        query: str,
        scope: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SearchResponse:
        """Search posts by meaning.

        Args:
            query: Search text.
            scope: Department filter. None or "General" searches every department.
            limit: Maximum results, capped at the configured maximum.

        Returns:
            The ranked results. When nothing has been embedded yet the response
            is empty with indexed=False and an explanatory message.

        Raises:
            ValidationError: If the query is blank or the limit is not positive.
            EmbeddingUnavailable: If the query cannot be embedded.
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        query = query.strip()

        if limit is None:
            limit = self._default_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        limit = min(limit, self._max_limit)

        if self._store.count_embedded() == 0:
            logger.info("Search for %r skipped: no posts have embeddings", query)
            return SearchResponse(
                query=query, results=[], results_count=0, indexed=False, message=NOT_INDEXED_MESSAGE
            )

        candidates = await self._retriever.retrieve(query, scope=scope, top_k=limit)
        results = [
            SearchHit.from_document(
                candidate.document,
                similarity=round(candidate.similarity, self._similarity_decimals),
            )
            for candidate in candidates
        ]
        logger.info("Search for %r returned %d results", query, len(results))
        return SearchResponse(query=query, results=results, results_count=len(results))
