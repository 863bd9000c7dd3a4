"""Post, comment and vote-count schemas for the API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from campus.posts.models import Comment, Document


class Department(str, Enum):
    """Departments a post can belong to."""

    COMPUTER = "Computer"
    IT = "IT"
    MECHANICAL = "Mechanical"
    CIVIL = "Civil"
    ELECTRONICS = "Electronics"
    ELECTRICAL = "Electrical"
    GENERAL = "General"


class VoteCounts(BaseModel):
    """Derived vote totals for a post or comment."""

    upvote_count: int = Field(0, description="Number of upvoters")
    downvote_count: int = Field(0, description="Number of downvoters")
    net_votes: int = Field(0, description="Upvotes minus downvotes")

    @classmethod
    def of(cls, upvotes: int, downvotes: int) -> "VoteCounts":
        return cls(upvote_count=upvotes, downvote_count=downvotes, net_votes=upvotes - downvotes)

    @classmethod
    def from_document(cls, document: "Document") -> "VoteCounts":
        return cls.of(len(document.upvotes), len(document.downvotes))


class AuthorRef(BaseModel):
    """Author summary embedded in post responses."""

    id: str
    name: str | None = None


class SentimentOut(BaseModel):
    """Sentiment attached to a post."""

    score: float
    label: str


class PostOut(VoteCounts):
    """A post as returned to clients. Never carries the embedding."""

    id: str
    author: AuthorRef
    title: str
    content: str
    department: str
    summary: str | None = None
    sentiment: SentimentOut | None = None
    tags: list[str] = Field(default_factory=list)
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(  # type: ignore[override]
        cls, document: "Document", **extra: Any
    ) -> "PostOut":
        counts = VoteCounts.from_document(document)
        return cls(**document.to_dict(), **counts.model_dump(), **extra)


class PostCreate(BaseModel):
    """Request to create a post."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    department: Department


class PostUpdate(BaseModel):
    """Partial post update. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1, max_length=5000)
    department: Department | None = None


class CommentCreate(BaseModel):
    """Request to comment on a post."""

    content: str = Field(..., min_length=1, max_length=1000)


class CommentUpdate(BaseModel):
    """Request to edit a comment."""

    content: str = Field(..., min_length=1, max_length=1000)


class CommentOut(VoteCounts):
    """A comment as returned to clients."""

    id: str
    post_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_comment(cls, comment: "Comment") -> "CommentOut":
        counts = VoteCounts.of(len(comment.upvotes), len(comment.downvotes))
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            author_id=comment.author_id,
            content=comment.body,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            **counts.model_dump(),
        )
