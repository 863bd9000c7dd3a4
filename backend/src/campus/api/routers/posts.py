"""Post, comment and post-vote endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from campus.api.deps import get_current_user_id, get_post_service, get_vote_ledger
from campus.posts.schemas import (
    CommentCreate,
    CommentOut,
    PostCreate,
    PostOut,
    PostUpdate,
)
from campus.posts.service import PostService
from campus.votes.ledger import VoteLedger
from campus.votes.schemas import VoteRequest, VoteResult, VoteStatus

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("", response_model=list[PostOut])
async def list_posts(
    department: Optional[str] = Query(None, description="Department filter; General means all"),
    limit: int = Query(20, ge=1, le=100),
    service: PostService = Depends(get_post_service),
) -> list[PostOut]:
    """Newest posts first."""
    return [PostOut.from_document(post) for post in service.list_posts(department, limit)]


@router.post("", response_model=PostOut, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostOut:
    """Create a post. It is embedded, summarized and tagged before it is saved."""
    return PostOut.from_document(await service.create(user_id, data))


@router.get("/{post_id}", response_model=PostOut)
async def get_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
) -> PostOut:
    """Get a single post."""
    return PostOut.from_document(service.get(post_id))


@router.put("/{post_id}", response_model=PostOut)
async def update_post(
    post_id: str,
    data: PostUpdate,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostOut:
    """Edit a post (author only). Changing the text regenerates its embedding."""
    return PostOut.from_document(await service.update(post_id, user_id, data))


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> dict[str, str]:
    """Delete a post and its comments, votes and notifications (author only)."""
    service.delete(post_id, user_id)
    return {"message": "Post and associated comments deleted successfully"}


@router.get("/{post_id}/comments", response_model=list[CommentOut])
async def list_comments(
    post_id: str,
    limit: int = Query(50, ge=1, le=200),
    service: PostService = Depends(get_post_service),
) -> list[CommentOut]:
    """A post's comments, oldest first, with vote counts."""
    return [CommentOut.from_comment(c) for c in service.list_comments(post_id, limit)]


@router.post("/{post_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    data: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> CommentOut:
    """Comment on a post. The post's author is notified."""
    return CommentOut.from_comment(await service.add_comment(post_id, user_id, data))


@router.post("/{post_id}/vote", response_model=VoteResult)
async def vote_on_post(
    post_id: str,
    data: VoteRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: VoteLedger = Depends(get_vote_ledger),
) -> VoteResult:
    """Upvote, downvote or remove a vote. Repeating a vote removes it."""
    return await ledger.apply_vote(post_id, user_id, data.vote_type)


@router.get("/{post_id}/vote-status", response_model=VoteStatus)
async def vote_status(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    ledger: VoteLedger = Depends(get_vote_ledger),
) -> VoteStatus:
    """The caller's vote on a post and the post's counts."""
    return ledger.vote_status(post_id, user_id)
