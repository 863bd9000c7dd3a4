"""Semantic search."""

from campus.search.schemas import SearchHit, SearchResponse
from campus.search.service import RankedSearchService

__all__ = ["RankedSearchService", "SearchHit", "SearchResponse"]
