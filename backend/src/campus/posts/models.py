"""Internal models for posts, comments and users."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class VoteDirection(str, Enum):
    """Stored direction of a single user's vote."""

    UP = "up"
    DOWN = "down"


@dataclass
class User:
    """A forum member."""

    id: str
    name: str
    email: str
    department: str
    year: str
    created_at: datetime


@dataclass
class Sentiment:
    """Sentiment of a post body, score in [-1, 1]."""

    score: float = 0.0
    label: str = "neutral"


@dataclass
class Document:
    """A post as seen by retrieval and voting.

    The embedding stays None until it has been generated. Upvoters and
    downvoters are disjoint sets of user ids.
    """

    id: str
    author_id: str
    title: str
    body: str
    scope: str
    created_at: datetime
    updated_at: datetime
    embedding: list[float] | None = None
    upvotes: set[str] = field(default_factory=set)
    downvotes: set[str] = field(default_factory=set)
    summary: str | None = None
    sentiment: Sentiment | None = None
    tags: list[str] = field(default_factory=list)
    comment_count: int = 0
    author_name: str | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def net_score(self) -> int:
        return len(self.upvotes) - len(self.downvotes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses. The embedding is never included."""
        return {
            "id": self.id,
            "author": {"id": self.author_id, "name": self.author_name},
            "title": self.title,
            "content": self.body,
            "department": self.scope,
            "summary": self.summary,
            "sentiment": (
                {"score": self.sentiment.score, "label": self.sentiment.label}
                if self.sentiment
                else None
            ),
            "tags": list(self.tags),
            "comment_count": self.comment_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Comment:
    """A reply to a post."""

    id: str
    post_id: str
    author_id: str
    body: str
    created_at: datetime
    updated_at: datetime
    upvotes: set[str] = field(default_factory=set)
    downvotes: set[str] = field(default_factory=set)
