"""Vote state transitions, milestone detection and vote notifications."""

import logging
from typing import Optional

from campus.constants.votes import MILESTONE_THRESHOLDS
from campus.errors import NotFound, SelfVoteForbidden, ValidationError
from campus.notifications.schemas import NotificationEvent, NotificationType
from campus.notifications.service import NotificationDispatcher
from campus.posts.models import VoteDirection
from campus.posts.schemas import VoteCounts
from campus.posts.store import PostStore
from campus.votes.schemas import MilestoneEvent, VoteResult, VoteStatus, VoteType

logger = logging.getLogger(__name__)

LIKE_CONTENT = "liked your post"

_DIRECTION_FOR_TYPE = {
    VoteType.UPVOTE: VoteDirection.UP,
    VoteType.DOWNVOTE: VoteDirection.DOWN,
}

_TYPE_FOR_DIRECTION = {direction: vote_type for vote_type, direction in _DIRECTION_FOR_TYPE.items()}


def parse_vote_type(raw: str | VoteType) -> VoteType:
    """Parse a vote type, raising ValidationError for anything unknown."""
    try:
        return VoteType(raw)
    except ValueError:
        raise ValidationError(f"Invalid vote type: {raw!r}") from None


def next_state(current: Optional[VoteDirection], vote_type: VoteType) -> Optional[VoteDirection]:
    """Toggle rule for post votes.

    Repeating a vote clears it, the opposite vote replaces it and remove
    always clears.
    """
    if vote_type is VoteType.REMOVE:
        return None
    target = _DIRECTION_FOR_TYPE[vote_type]
    return None if current is target else target


def describe_transition(previous: Optional[VoteDirection], vote_type: VoteType) -> str:
    if vote_type is VoteType.REMOVE:
        return "Vote removed"
    if vote_type is VoteType.UPVOTE:
        return "Upvote removed" if previous is VoteDirection.UP else "Post upvoted"
    return "Downvote removed" if previous is VoteDirection.DOWN else "Post downvoted"


def milestone_for(upvotes: int) -> Optional[int]:
    """The milestone an upvote count sits on exactly, if any."""
    return upvotes if upvotes in MILESTONE_THRESHOLDS else None


def to_vote_type(direction: Optional[VoteDirection]) -> Optional[VoteType]:
    return _TYPE_FOR_DIRECTION[direction] if direction is not None else None


class VoteLedger:
    """Applies post votes.

    Each vote is one atomic read-modify-write in the store. Only a
    transition into the upvoted state can notify the author or reach a
    milestone, and both happen after the vote has been committed.
    """

    def __init__(
        self, store: PostStore, dispatcher: Optional[NotificationDispatcher] = None
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher

    async def apply_vote(self, post_id: str, user_id: str, vote_type: str | VoteType) -> VoteResult:
        """Apply a vote from user_id to a post.

        Args:
            post_id: Post being voted on.
            user_id: Acting user.
            vote_type: upvote, downvote or remove.

        Returns:
            The outcome, with counts read after the change.

        Raises:
            NotFound: If the post does not exist.
            SelfVoteForbidden: If the user wrote the post.
            ValidationError: If the vote type is unknown.
        """
        post = self._store.get(post_id)
        if post is None:
            raise NotFound(f"Post {post_id} not found")
        if post.author_id == user_id:
            raise SelfVoteForbidden("You cannot vote on your own post")
        parsed = parse_vote_type(vote_type)

        previous, new, upvotes, downvotes = self._store.transition_vote(
            "post", post_id, user_id, lambda current: next_state(current, parsed)
        )
        logger.info(
            "Vote %s by %s on post %s: %s -> %s",
            parsed.value,
            user_id,
            post_id,
            previous.value if previous else "none",
            new.value if new else "none",
        )

        milestone = None
        if new is VoteDirection.UP and previous is not VoteDirection.UP:
            await self._notify_like(post.author_id, user_id, post_id)
            event = self._check_milestone(post_id, post.author_id, upvotes)
            if event is not None:
                milestone = event.threshold
                await self._notify_milestone(event)

        return VoteResult(
            message=describe_transition(previous, parsed),
            counts=VoteCounts.of(upvotes, downvotes),
            user_vote=to_vote_type(new),
            milestone=milestone,
        )

    def vote_status(self, post_id: str, user_id: str) -> VoteStatus:
        """The user's current vote on a post and the post's counts.

        Raises:
            NotFound: If the post does not exist.
        """
        if not self._store.exists(post_id):
            raise NotFound(f"Post {post_id} not found")
        current = self._store.get_vote("post", post_id, user_id)
        upvotes, downvotes = self._store.count_votes("post", post_id)
        return VoteStatus(user_vote=to_vote_type(current), counts=VoteCounts.of(upvotes, downvotes))

    def _check_milestone(
        self, post_id: str, author_id: str, upvotes: int
    ) -> Optional[MilestoneEvent]:
        threshold = milestone_for(upvotes)
        if threshold is None:
            return None
        # Recorded pairs never fire again, even when the count re-enters from above
        if not self._store.record_milestone(post_id, threshold):
            return None
        logger.info("Post %s reached %d upvotes", post_id, threshold)
        return MilestoneEvent(post_id=post_id, author_id=author_id, threshold=threshold)

    async def _notify_like(self, author_id: str, voter_id: str, post_id: str) -> None:
        if self._dispatcher is None:
            return
        await self._dispatcher.notify(
            author_id,
            NotificationEvent(
                type=NotificationType.LIKE,
                content=LIKE_CONTENT,
                sender_id=voter_id,
                post_id=post_id,
            ),
        )

    async def _notify_milestone(self, event: MilestoneEvent) -> None:
        if self._dispatcher is None:
            return
        await self._dispatcher.notify(
            event.author_id,
            NotificationEvent(
                type=NotificationType.MILESTONE,
                content=f"Your post reached {event.threshold} upvotes!",
                post_id=event.post_id,
            ),
        )


class CommentVoteLedger:
    """Applies comment votes.

    Comment votes set the requested state rather than toggling it. Authors
    may vote on their own comments and no notifications are sent.
    """

    def __init__(self, store: PostStore) -> None:
        self._store = store

    def apply_vote(self, comment_id: str, user_id: str, vote_type: str | VoteType) -> VoteResult:
        """Set user_id's vote on a comment.

        Raises:
            NotFound: If the comment does not exist.
            ValidationError: If the vote type is unknown.
        """
        if self._store.get_comment(comment_id) is None:
            raise NotFound(f"Comment {comment_id} not found")
        parsed = parse_vote_type(vote_type)
        target = _DIRECTION_FOR_TYPE.get(parsed)

        _, new, upvotes, downvotes = self._store.transition_vote(
            "comment", comment_id, user_id, lambda _: target
        )

        messages = {
            VoteType.UPVOTE: "Comment upvoted",
            VoteType.DOWNVOTE: "Comment downvoted",
            VoteType.REMOVE: "Vote removed",
        }
        return VoteResult(
            message=messages[parsed],
            counts=VoteCounts.of(upvotes, downvotes),
            user_vote=to_vote_type(new),
        )

    def vote_status(self, comment_id: str, user_id: str) -> VoteStatus:
        """The user's current vote on a comment and the comment's counts.

        Raises:
            NotFound: If the comment does not exist.
        """
        if self._store.get_comment(comment_id) is None:
            raise NotFound(f"Comment {comment_id} not found")
        current = self._store.get_vote("comment", comment_id, user_id)
        upvotes, downvotes = self._store.count_votes("comment", comment_id)
        return VoteStatus(user_vote=to_vote_type(current), counts=VoteCounts.of(upvotes, downvotes))
