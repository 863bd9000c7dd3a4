"""Semantic search response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from campus.posts.schemas import PostOut


class SearchHit(PostOut):
    """A matching post with its similarity to the query."""

    similarity: float = Field(..., description="Cosine similarity rounded for display")


class SearchResponse(BaseModel):
    """Ranked search results."""

    query: str
    results: list[SearchHit] = Field(default_factory=list)
    results_count: int = 0
    indexed: bool = Field(True, description="False when no post has an embedding yet")
    message: Optional[str] = None
