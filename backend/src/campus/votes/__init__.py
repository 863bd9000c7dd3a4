"""Post and comment voting."""

from campus.votes.ledger import CommentVoteLedger, VoteLedger, next_state
from campus.votes.schemas import MilestoneEvent, VoteResult, VoteStatus, VoteType

__all__ = [
    "CommentVoteLedger",
    "MilestoneEvent",
    "VoteLedger",
    "VoteResult",
    "VoteStatus",
    "VoteType",
    "next_state",
]
