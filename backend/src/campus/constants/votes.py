"""Voting configuration.

Upvote milestones notify a post's author when the post's upvote count reaches
one of these values. The list must stay strictly ascending.
"""

MILESTONE_THRESHOLDS: tuple[int, ...] = (5, 10, 25, 50, 100, 250, 500, 1000)
