"""Vote request and response schemas."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from campus.posts.schemas import VoteCounts


class VoteType(str, Enum):
    """Action requested by a voter."""

    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    REMOVE = "remove"


class VoteRequest(BaseModel):
    """Body of a vote request. The type is validated by the ledger."""

    vote_type: str = Field(..., alias="voteType", description="upvote, downvote or remove")

    model_config = {"populate_by_name": True}


@dataclass(frozen=True)
class MilestoneEvent:
    """A post's upvote count reached a milestone for the first time."""

    post_id: str
    author_id: str
    threshold: int


class VoteResult(BaseModel):
    """Outcome of a vote."""

    message: str = Field(..., description="Human-readable outcome")
    counts: VoteCounts = Field(..., description="Vote totals after the change")
    user_vote: Optional[VoteType] = Field(
        None, description="The voter's vote after the change, null when none"
    )
    milestone: Optional[int] = Field(None, description="Milestone reached by this vote")


class VoteStatus(BaseModel):
    """A user's current vote on a post."""

    user_vote: Optional[VoteType] = None
    counts: VoteCounts
