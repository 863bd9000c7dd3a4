"""Comment read, edit, delete and vote endpoints."""

from fastapi import APIRouter, Depends

from campus.api.deps import get_comment_vote_ledger, get_current_user_id, get_post_service
from campus.posts.schemas import CommentOut, CommentUpdate
from campus.posts.service import PostService
from campus.votes.ledger import CommentVoteLedger
from campus.votes.schemas import VoteRequest, VoteResult, VoteStatus

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.get("/{comment_id}", response_model=CommentOut)
async def get_comment(
    comment_id: str,
    service: PostService = Depends(get_post_service),
) -> CommentOut:
    """Get a single comment with its vote counts."""
    return CommentOut.from_comment(service.get_comment(comment_id))


@router.put("/{comment_id}", response_model=CommentOut)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> CommentOut:
    """Edit a comment (author only)."""
    return CommentOut.from_comment(service.update_comment(comment_id, user_id, data))


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> dict[str, str]:
    """Delete a comment and its votes (author only)."""
    service.delete_comment(comment_id, user_id)
    return {"message": "Comment deleted successfully"}


@router.post("/{comment_id}/vote", response_model=VoteResult)
async def vote_on_comment(
    comment_id: str,
    data: VoteRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: CommentVoteLedger = Depends(get_comment_vote_ledger),
) -> VoteResult:
    """Set the caller's vote on a comment."""
    return ledger.apply_vote(comment_id, user_id, data.vote_type)


@router.get("/{comment_id}/vote-status", response_model=VoteStatus)
async def comment_vote_status(
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: CommentVoteLedger = Depends(get_comment_vote_ledger),
) -> VoteStatus:
    """The caller's vote on a comment and the comment's counts."""
    return ledger.vote_status(comment_id, user_id)
