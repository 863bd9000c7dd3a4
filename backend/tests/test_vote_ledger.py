"""Vote ledger tests."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest
from hypothesis import given, strategies as st

from campus.errors import NotFound, SelfVoteForbidden, ValidationError
from campus.notifications.registry import SessionRegistry
from campus.notifications.service import NotificationDispatcher
from campus.posts.models import VoteDirection
from campus.votes.ledger import (
    CommentVoteLedger,
    VoteLedger,
    milestone_for,
    next_state,
    parse_vote_type,
)
from campus.votes.schemas import VoteType


@pytest.fixture
def dispatcher(temp_db):
    return NotificationDispatcher(temp_db, SessionRegistry())


@pytest.fixture
def ledger(store, dispatcher):
    return VoteLedger(store, dispatcher)


@pytest.fixture
def post(make_post):
    return make_post(embedding=[1.0, 0.0])


def add_voters(store, count):
    return [
        store.add_user(f"Voter {i}", f"voter{i}@example.edu", "IT").id for i in range(count)
    ]


class TestNextState:
    """The toggle rule on its own."""

    @pytest.mark.parametrize(
        "current,vote_type,expected",
        [
            (None, VoteType.UPVOTE, VoteDirection.UP),
            (None, VoteType.DOWNVOTE, VoteDirection.DOWN),
            (None, VoteType.REMOVE, None),
            (VoteDirection.UP, VoteType.UPVOTE, None),
            (VoteDirection.UP, VoteType.DOWNVOTE, VoteDirection.DOWN),
            (VoteDirection.UP, VoteType.REMOVE, None),
            (VoteDirection.DOWN, VoteType.UPVOTE, VoteDirection.UP),
            (VoteDirection.DOWN, VoteType.DOWNVOTE, None),
            (VoteDirection.DOWN, VoteType.REMOVE, None),
        ],
    )
    def test_transition_table(self, current, vote_type, expected):
        assert next_state(current, vote_type) is expected

    @given(
        st.sampled_from([None, VoteDirection.UP, VoteDirection.DOWN]),
        st.sampled_from([VoteType.UPVOTE, VoteType.DOWNVOTE]),
    )
    def test_same_vote_twice_restores_or_clears(self, current, vote_type):
        once = next_state(current, vote_type)
        twice = next_state(once, vote_type)
        assert twice is (None if once is not None else next_state(None, vote_type))

    def test_unknown_vote_type_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_vote_type("sideways")

    def test_milestones(self):
        assert milestone_for(5) == 5
        assert milestone_for(6) is None
        assert milestone_for(1000) == 1000


class TestVoteLedger:
    """Post votes against a real store."""

    async def test_upvote_then_repeat_removes(self, ledger, post, users):
        first = await ledger.apply_vote(post.id, users["voter"].id, "upvote")
        second = await ledger.apply_vote(post.id, users["voter"].id, "upvote")

        assert first.message == "Post upvoted"
        assert first.user_vote is VoteType.UPVOTE
        assert first.counts.upvote_count == 1
        assert second.message == "Upvote removed"
        assert second.user_vote is None
        assert second.counts.upvote_count == 0

    async def test_switching_vote_keeps_sets_disjoint(self, ledger, post, users, store):
        await ledger.apply_vote(post.id, users["voter"].id, "upvote")
        result = await ledger.apply_vote(post.id, users["voter"].id, "downvote")

        document = store.get(post.id)
        assert result.message == "Post downvoted"
        assert document.upvotes == set()
        assert document.downvotes == {users["voter"].id}
        assert result.counts.net_votes == -1

    async def test_remove_clears_any_vote(self, ledger, post, users):
        await ledger.apply_vote(post.id, users["voter"].id, "downvote")
        result = await ledger.apply_vote(post.id, users["voter"].id, "remove")

        assert result.message == "Vote removed"
        assert result.counts.downvote_count == 0

    async def test_counts_reflect_every_voter(self, ledger, post, users):
        await ledger.apply_vote(post.id, users["voter"].id, "upvote")
        result = await ledger.apply_vote(post.id, users["other"].id, "downvote")

        assert result.counts.upvote_count == 1
        assert result.counts.downvote_count == 1
        assert result.counts.net_votes == 0

    async def test_self_vote_is_forbidden(self, ledger, post, users, store):
        with pytest.raises(SelfVoteForbidden):
            await ledger.apply_vote(post.id, users["author"].id, "upvote")

        assert store.count_votes("post", post.id) == (0, 0)

    async def test_missing_post_is_not_found(self, ledger, users):
        with pytest.raises(NotFound):
            await ledger.apply_vote("missing", users["voter"].id, "upvote")

    async def test_invalid_type_leaves_state_unchanged(self, ledger, post, users, store):
        await ledger.apply_vote(post.id, users["voter"].id, "upvote")

        with pytest.raises(ValidationError):
            await ledger.apply_vote(post.id, users["voter"].id, "sideways")

        assert store.get_vote("post", post.id, users["voter"].id) is VoteDirection.UP

    async def test_vote_status(self, ledger, post, users):
        await ledger.apply_vote(post.id, users["voter"].id, "downvote")

        status = ledger.vote_status(post.id, users["voter"].id)
        untouched = ledger.vote_status(post.id, users["other"].id)

        assert status.user_vote is VoteType.DOWNVOTE
        assert status.counts.downvote_count == 1
        assert untouched.user_vote is None

    async def test_vote_status_missing_post(self, ledger, users):
        with pytest.raises(NotFound):
            ledger.vote_status("missing", users["voter"].id)


class TestVoteNotifications:
    """Likes and milestones."""

    async def test_upvote_notifies_author_once(self, ledger, dispatcher, post, users):
        voter = users["voter"].id
        await ledger.apply_vote(post.id, voter, "upvote")
        await ledger.apply_vote(post.id, voter, "upvote")  # removes
        await ledger.apply_vote(post.id, voter, "upvote")  # upvotes again

        likes = [n for n in dispatcher.list_for(users["author"].id) if n.type.value == "like"]
        assert len(likes) == 1
        assert likes[0].sender_id == voter
        assert likes[0].post_id == post.id
        assert likes[0].content == "liked your post"

    async def test_downvote_does_not_notify(self, ledger, dispatcher, post, users):
        await ledger.apply_vote(post.id, users["voter"].id, "downvote")

        assert dispatcher.list_for(users["author"].id) == []

    async def test_milestone_fires_on_reaching_threshold(self, ledger, dispatcher, post, store):
        voters = add_voters(store, 6)
        results = [await ledger.apply_vote(post.id, v, "upvote") for v in voters]

        assert [r.milestone for r in results] == [None, None, None, None, 5, None]
        milestones = [
            n for n in dispatcher.list_for(post.author_id) if n.type.value == "milestone"
        ]
        assert [n.content for n in milestones] == ["Your post reached 5 upvotes!"]

    async def test_milestone_does_not_refire_when_reentered_from_above(
        self, ledger, dispatcher, post, store
    ):
        voters = add_voters(store, 6)
        for voter in voters:
            await ledger.apply_vote(post.id, voter, "upvote")

        # 6 -> 4 -> 5 again
        await ledger.apply_vote(post.id, voters[5], "remove")
        await ledger.apply_vote(post.id, voters[4], "remove")
        result = await ledger.apply_vote(post.id, voters[4], "upvote")

        assert result.counts.upvote_count == 5
        assert result.milestone is None
        milestones = [
            n for n in dispatcher.list_for(post.author_id) if n.type.value == "milestone"
        ]
        assert len(milestones) == 1

    async def test_ledger_without_dispatcher_still_records_milestones(self, store, post):
        ledger = VoteLedger(store)
        voters = add_voters(store, 5)

        results = [await ledger.apply_vote(post.id, v, "upvote") for v in voters]

        assert results[-1].milestone == 5
        assert store.record_milestone(post.id, 5) is False


class TestCommentVoteLedger:
    """Comment votes set the requested state."""

    @pytest.fixture
    def comment(self, store, post, users):
        return store.add_comment(post.id, users["voter"].id, "Try the mock tests")

    def test_upvote_twice_stays_upvoted(self, store, comment, users):
        ledger = CommentVoteLedger(store)

        ledger.apply_vote(comment.id, users["other"].id, "upvote")
        result = ledger.apply_vote(comment.id, users["other"].id, "upvote")

        assert result.message == "Comment upvoted"
        assert result.user_vote is VoteType.UPVOTE
        assert result.counts.upvote_count == 1

    def test_switch_and_remove(self, store, comment, users):
        ledger = CommentVoteLedger(store)

        ledger.apply_vote(comment.id, users["other"].id, "upvote")
        switched = ledger.apply_vote(comment.id, users["other"].id, "downvote")
        removed = ledger.apply_vote(comment.id, users["other"].id, "remove")

        assert switched.message == "Comment downvoted"
        assert (switched.counts.upvote_count, switched.counts.downvote_count) == (0, 1)
        assert removed.message == "Vote removed"
        assert removed.counts.net_votes == 0

    def test_comment_author_may_vote(self, store, comment, users):
        result = CommentVoteLedger(store).apply_vote(comment.id, users["voter"].id, "upvote")

        assert result.counts.upvote_count == 1

    def test_missing_comment_is_not_found(self, store, users):
        with pytest.raises(NotFound):
            CommentVoteLedger(store).apply_vote("missing", users["voter"].id, "upvote")

    def test_invalid_type(self, store, comment, users):
        with pytest.raises(ValidationError):
            CommentVoteLedger(store).apply_vote(comment.id, users["other"].id, "sideways")

    def test_comment_vote_status(self, store, comment, users):
        ledger = CommentVoteLedger(store)
        ledger.apply_vote(comment.id, users["other"].id, "downvote")

        status = ledger.vote_status(comment.id, users["other"].id)
        bystander = ledger.vote_status(comment.id, users["author"].id)

        assert status.user_vote is VoteType.DOWNVOTE
        assert status.counts.downvote_count == 1
        assert bystander.user_vote is None
        with pytest.raises(NotFound):
            ledger.vote_status("missing", users["other"].id)


def milestone_rows(temp_db, post_id, threshold):
    return temp_db.execute(
        "SELECT COUNT(*) FROM milestones WHERE post_id = ? AND threshold = ?",
        (post_id, threshold),
    ).fetchone()[0]


class TestConcurrentVoting:
    """Simultaneous voters never lose a vote or double-fire a milestone."""

    async def test_gathered_upvotes_all_count(self, ledger, dispatcher, post, store, temp_db):
        voters = add_voters(store, 8)

        results = await asyncio.gather(
            *(ledger.apply_vote(post.id, voter, "upvote") for voter in voters)
        )

        assert store.count_votes("post", post.id) == (8, 0)
        assert sorted(r.counts.upvote_count for r in results) == list(range(1, 9))
        assert [r.milestone for r in results].count(5) == 1
        assert milestone_rows(temp_db, post.id, 5) == 1
        milestones = [
            n for n in dispatcher.list_for(post.author_id) if n.type.value == "milestone"
        ]
        assert len(milestones) == 1

    def test_threaded_transitions_are_serialized(self, store, post):
        voters = add_voters(store, 20)

        with ThreadPoolExecutor(max_workers=8) as pool:
            transitions = list(
                pool.map(
                    lambda voter: store.transition_vote(
                        "post", post.id, voter, lambda _: VoteDirection.UP
                    ),
                    voters,
                )
            )

        assert store.count_votes("post", post.id) == (20, 0)
        # Each transition saw the count its own write produced
        assert sorted(t.upvotes for t in transitions) == list(range(1, 21))

    def test_threaded_votes_reach_milestone_once(self, store, post, temp_db):
        ledger = VoteLedger(store)
        voters = add_voters(store, 12)

        def vote(voter):
            return asyncio.run(ledger.apply_vote(post.id, voter, "upvote"))

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(vote, voters))

        assert store.count_votes("post", post.id) == (12, 0)
        assert sorted(r.milestone for r in results if r.milestone) == [5, 10]
        assert milestone_rows(temp_db, post.id, 5) == 1
        assert milestone_rows(temp_db, post.id, 10) == 1
