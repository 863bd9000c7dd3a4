"""Leaderboard of users ranked by upvotes received on posts and comments."""

from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from campus.db.connection import Database

UNKNOWN = "Unknown"


class TimeRange(str, Enum):
    """Window of contributions counted by the leaderboard."""

    ALL = "all"
    MONTH = "month"


class LeaderboardEntry(BaseModel):
    """One ranked user."""

    rank: int
    user_id: str
    name: str
    department: str
    year: str
    total_upvotes: int
    post_upvotes: int
    comment_upvotes: int
    post_count: int
    answer_count: int
    total_contributions: int


class Leaderboard(BaseModel):
    """Leaderboard response."""

    leaderboard: list[LeaderboardEntry] = Field(default_factory=list)
    current_user_rank: Optional[LeaderboardEntry] = None
    time_range: TimeRange
    total_users: int


_AUTHOR_SCORES_SQL = """
    SELECT t.author_id AS user_id,
           COUNT(DISTINCT t.id) AS item_count,
           COALESCE(SUM(CASE WHEN v.direction = 'up' THEN 1 ELSE 0 END), 0) AS upvotes
    FROM {table} t
    LEFT JOIN {vote_table} v ON v.{vote_column} = t.id
    WHERE t.created_at >= ?
    GROUP BY t.author_id
"""


class LeaderboardService:
    """Ranks users by total upvotes received."""

    def __init__(self, db: Database, month_days: int = 30) -> None:
        self._db = db
        self._month_days = month_days

    def _scores(self, since: str) -> dict[str, dict[str, int]]:
        scores: dict[str, dict[str, int]] = {}
        sources = (
            ("posts", "votes", "post_id", "post"),
            ("comments", "comment_votes", "comment_id", "comment"),
        )
        for table, vote_table, vote_column, prefix in sources:
            sql = _AUTHOR_SCORES_SQL.format(
                table=table, vote_table=vote_table, vote_column=vote_column
            )
            for row in self._db.execute(sql, (since,)):
                score = scores.setdefault(
                    row["user_id"],
                    {"post_upvotes": 0, "post_count": 0, "comment_upvotes": 0, "answer_count": 0},
                )
                if prefix == "post":
                    score["post_upvotes"] = row["upvotes"]
                    score["post_count"] = row["item_count"]
                else:
                    score["comment_upvotes"] = row["upvotes"]
                    score["answer_count"] = row["item_count"]
        return scores

    def _users(self, user_ids: list[str]) -> dict[str, dict[str, str]]:
        if not user_ids:
            return {}
        placeholders = ",".join("?" for _ in user_ids)
        rows = self._db.execute(
            f"SELECT id, name, department, year FROM users WHERE id IN ({placeholders})",
            tuple(user_ids),
        )
        return {row["id"]: dict(row) for row in rows}

    def build(
        self,
        time_range: TimeRange = TimeRange.ALL,
        department: Optional[str] = None,
        limit: int = 20,
        current_user_id: Optional[str] = None,
    ) -> Leaderboard:
        """Build the leaderboard.

        Args:
            time_range: Count only contributions created in the last month, or all.
            department: Only rank users of this department. None or "all" ranks everyone.
            limit: Maximum entries returned.
            current_user_id: User whose overall rank is reported separately.

        Returns:
            Ranked entries. Ranks restart at 1 after department filtering; the
            current user's rank is always among all users.
        """
        if time_range is TimeRange.MONTH:
            since = (datetime.now(UTC) - timedelta(days=self._month_days)).isoformat()
        else:
            since = ""

        scores = self._scores(since)
        ranked = sorted(
            scores.items(),
            key=lambda item: (
                -(item[1]["post_upvotes"] + item[1]["comment_upvotes"]),
                -(item[1]["post_count"] + item[1]["answer_count"]),
                item[0],
            ),
        )
        users = self._users([user_id for user_id, _ in ranked])

        def entry(rank: int, user_id: str, score: dict[str, int]) -> LeaderboardEntry:
            user = users.get(user_id, {})
            return LeaderboardEntry(
                rank=rank,
                user_id=user_id,
                name=user.get("name") or UNKNOWN,
                department=user.get("department") or UNKNOWN,
                year=user.get("year") or UNKNOWN,
                total_upvotes=score["post_upvotes"] + score["comment_upvotes"],
                post_upvotes=score["post_upvotes"],
                comment_upvotes=score["comment_upvotes"],
                post_count=score["post_count"],
                answer_count=score["answer_count"],
                total_contributions=score["post_count"] + score["answer_count"],
            )

        filtered = ranked
        if department and department != "all":
            filtered = [
                (user_id, score)
                for user_id, score in ranked
                if users.get(user_id, {}).get("department") == department
            ]

        current = None
        if current_user_id is not None:
            for index, (user_id, score) in enumerate(ranked):
                if user_id == current_user_id:
                    current = entry(index + 1, user_id, score)
                    break

        return Leaderboard(
            leaderboard=[
                entry(index + 1, user_id, score)
                for index, (user_id, score) in enumerate(filtered[:limit])
            ],
            current_user_rank=current,
            time_range=time_range,
            total_users=len(filtered),
        )
