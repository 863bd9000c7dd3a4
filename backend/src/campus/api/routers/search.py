"""Semantic search endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus.api.deps import get_search_service
from campus.search.schemas import SearchResponse
from campus.search.service import RankedSearchService

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query("", description="Search query"),
    department: Optional[str] = Query(None, description="Department filter; General means all"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum results"),
    service: RankedSearchService = Depends(get_search_service),
) -> SearchResponse:
    """Search posts by meaning rather than keywords."""
    return await service.search(q, scope=department, limit=limit)
