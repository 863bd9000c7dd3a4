"""SQLite-backed store for users, posts, comments and votes."""

import json
import logging
import sqlite3
import threading
import uuid
from collections.abc import Callable, Iterator, Sequence
from datetime import datetime, UTC
from typing import Literal, NamedTuple, Optional

from campus.db.connection import Database
from campus.errors import ValidationError
from campus.posts.models import Comment, Document, Sentiment, User, VoteDirection

logger = logging.getLogger(__name__)

VoteTarget = Literal["post", "comment"]


class VoteTransition(NamedTuple):
    """A vote change and the target's counts right after it."""

    previous: Optional[VoteDirection]
    new: Optional[VoteDirection]
    upvotes: int
    downvotes: int


# target kind -> (vote table, key column)
_VOTE_TABLES: dict[str, tuple[str, str]] = {
    "post": ("votes", "post_id"),
    "comment": ("comment_votes", "comment_id"),
}

# Post ids bound per IN (...) query
_IN_CHUNK = 500

_POST_COLUMNS = """
    p.id, p.author_id, p.title, p.body, p.department, p.embedding, p.summary,
    p.sentiment_score, p.sentiment_label, p.tags, p.comment_count,
    p.created_at, p.updated_at, u.name AS author_name
"""


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


def _vote_table(kind: str) -> tuple[str, str]:
    try:
        return _VOTE_TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown vote target: {kind}") from None


def _row_to_document(row) -> Document:
    sentiment = None
    if row["sentiment_label"] is not None:
        sentiment = Sentiment(score=row["sentiment_score"] or 0.0, label=row["sentiment_label"])
    return Document(
        id=row["id"],
        author_id=row["author_id"],
        title=row["title"],
        body=row["body"],
        scope=row["department"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        summary=row["summary"],
        sentiment=sentiment,
        tags=json.loads(row["tags"]) if row["tags"] else [],
        comment_count=row["comment_count"],
        author_name=row["author_name"],
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row["id"],
        post_id=row["post_id"],
        author_id=row["author_id"],
        body=row["body"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class PostStore:
    """Persistence for the forum's documents.

    Vote rows are keyed by (target, user), so a user is an upvoter or a
    downvoter of a target but never both. Vote transitions are serialized by
    a lock and run inside BEGIN IMMEDIATE.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def add_user(
        self,
        name: str,
        email: str,
        department: str,
        year: str = "FE",
        user_id: Optional[str] = None,
    ) -> User:
        """Create a user and return it."""
        user = User(
            id=user_id or _new_id(),
            name=name,
            email=email,
            department=department,
            year=year,
            created_at=_now(),
        )
        self._db.execute(
            """
            INSERT INTO users (id, name, email, department, year, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user.id, name, email, department, year, user.created_at.isoformat()),
        )
        self._db.commit()
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        row = self._db.execute(
            "SELECT id, name, email, department, year, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if not row:
            return None
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            department=row["department"],
            year=row["year"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self._db.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
        return self.get_user(row["id"]) if row else None

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    def create_post(
        self,
        author_id: str,
        title: str,
        body: str,
        scope: str,
        embedding: Optional[list[float]] = None,
        summary: Optional[str] = None,
        sentiment: Optional[Sentiment] = None,
        tags: Optional[list[str]] = None,
        post_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Document:
        """Insert a post and return it as stored."""
        post_id = post_id or _new_id()
        created = (created_at or _now()).isoformat()
        self._db.execute(
            """
            INSERT INTO posts (
                id, author_id, title, body, department, embedding, summary,
                sentiment_score, sentiment_label, tags, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                post_id,
                author_id,
                title,
                body,
                scope,
                json.dumps(embedding) if embedding else None,
                summary,
                sentiment.score if sentiment else None,
                sentiment.label if sentiment else None,
                json.dumps(tags or []),
                created,
                created,
            ),
        )
        self._db.commit()
        document = self.get(post_id)
        if document is None:
            raise RuntimeError("Failed to read post after insert")
        return document

    def get(self, post_id: str) -> Optional[Document]:
        """Load a post with its voters, or None if it does not exist."""
        row = self._db.execute(
            f"SELECT {_POST_COLUMNS} FROM posts p LEFT JOIN users u ON u.id = p.author_id "
            "WHERE p.id = ?",
            (post_id,),
        ).fetchone()
        if not row:
            return None
        document = _row_to_document(row)
        document.upvotes, document.downvotes = self.vote_members("post", post_id)
        return document

    def exists(self, post_id: str) -> bool:
        row = self._db.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,)).fetchone()
        return row is not None

    def update_post(self, document: Document) -> Document:
        """Write a post's mutable fields back and bump updated_at."""
        document.updated_at = _now()
        self._db.execute(
            """
            UPDATE posts SET
                title = ?, body = ?, department = ?, embedding = ?, summary = ?,
                sentiment_score = ?, sentiment_label = ?, tags = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                document.title,
                document.body,
                document.scope,
                json.dumps(document.embedding) if document.embedding else None,
                document.summary,
                document.sentiment.score if document.sentiment else None,
                document.sentiment.label if document.sentiment else None,
                json.dumps(document.tags),
                document.updated_at.isoformat(),
                document.id,
            ),
        )
        self._db.commit()
        return document

    def set_embedding(self, post_id: str, embedding: Optional[list[float]]) -> None:
        """Store or clear a post's embedding without touching updated_at."""
        self._db.execute(
            "UPDATE posts SET embedding = ? WHERE id = ?",
            (json.dumps(embedding) if embedding else None, post_id),
        )
        self._db.commit()

    def delete_post(self, post_id: str) -> bool:
        """Delete a post. Comments, votes, milestones and notifications cascade.

        Returns:
            True if deleted, False if not found.
        """
        with self._lock:
            cursor = self._db.execute("DELETE FROM posts WHERE id = ?", (post_id,))
            self._db.commit()
        return cursor.rowcount > 0

    def list_posts(self, scope: Optional[str] = None, limit: int = 20) -> list[Document]:
        """Newest posts first, optionally within one department."""
        sql = f"SELECT {_POST_COLUMNS} FROM posts p LEFT JOIN users u ON u.id = p.author_id"
        params: tuple = ()
        if scope:
            sql += " WHERE p.department = ?"
            params = (scope,)
        sql += " ORDER BY p.created_at DESC, p.id DESC LIMIT ?"
        documents = [_row_to_document(row) for row in self._db.execute(sql, params + (limit,))]
        self._attach_votes("post", documents)
        return documents

    # -------------------------------------------------------------------------
    # Retrieval support
    # -------------------------------------------------------------------------

    def find_embedded(self, scope: Optional[str] = None) -> list[Document]:
        """All posts that have an embedding, optionally within one department."""
        sql = (
            f"SELECT {_POST_COLUMNS} FROM posts p LEFT JOIN users u ON u.id = p.author_id "
            "WHERE p.embedding IS NOT NULL AND p.embedding != '[]'"
        )
        params: tuple = ()
        if scope:
            sql += " AND p.department = ?"
            params = (scope,)
        documents = [_row_to_document(row) for row in self._db.execute(sql, params)]
        self._attach_votes("post", documents)
        return documents

    def count_embedded(self) -> int:
        row = self._db.execute(
            "SELECT COUNT(*) FROM posts WHERE embedding IS NOT NULL AND embedding != '[]'"
        ).fetchone()
        return row[0]

    def find_missing_embeddings(self, limit: Optional[int] = None) -> list[Document]:
        """Posts without an embedding, oldest first."""
        sql = (
            f"SELECT {_POST_COLUMNS} FROM posts p LEFT JOIN users u ON u.id = p.author_id "
            "WHERE p.embedding IS NULL OR p.embedding = '[]' ORDER BY p.created_at, p.id"
        )
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return [_row_to_document(row) for row in self._db.execute(sql, params)]

    def _vote_rows(self, kind: VoteTarget, target_ids: list[str]) -> Iterator[sqlite3.Row]:
        table, column = _vote_table(kind)
        # Chunked to stay under SQLite's bound-parameter limit
        for start in range(0, len(target_ids), _IN_CHUNK):
            chunk = target_ids[start : start + _IN_CHUNK]
            placeholders = ", ".join("?" * len(chunk))
            yield from self._db.execute(
                f"SELECT {column} AS target_id, user_id, direction FROM {table} "
                f"WHERE {column} IN ({placeholders})",
                tuple(chunk),
            ).fetchall()

    def _attach_votes(self, kind: VoteTarget, items: Sequence[Document | Comment]) -> None:
        """Fill upvotes and downvotes from the vote rows of just these targets."""
        by_id = {item.id: item for item in items}
        for row in self._vote_rows(kind, list(by_id)):
            item = by_id[row["target_id"]]
            voters = item.upvotes if row["direction"] == VoteDirection.UP.value else item.downvotes
            voters.add(row["user_id"])

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    def add_comment(self, post_id: str, author_id: str, body: str) -> Comment:
        """Insert a comment and bump the post's comment count in one transaction."""
        now = _now()
        comment = Comment(
            id=_new_id(),
            post_id=post_id,
            author_id=author_id,
            body=body,
            created_at=now,
            updated_at=now,
        )
        with self._lock, self._db.immediate():
            self._db.execute(
                """
                INSERT INTO comments (id, post_id, author_id, body, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (comment.id, post_id, author_id, body, now.isoformat(), now.isoformat()),
            )
            self._db.execute(
                "UPDATE posts SET comment_count = comment_count + 1 WHERE id = ?",
                (post_id,),
            )
        return comment

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        row = self._db.execute(
            "SELECT id, post_id, author_id, body, created_at, updated_at "
            "FROM comments WHERE id = ?",
            (comment_id,),
        ).fetchone()
        if not row:
            return None
        comment = _row_to_comment(row)
        comment.upvotes, comment.downvotes = self.vote_members("comment", comment_id)
        return comment

    def list_comments(self, post_id: str, limit: int = 50) -> list[Comment]:
        """A post's comments, oldest first, with their voters attached."""
        rows = self._db.execute(
            "SELECT id, post_id, author_id, body, created_at, updated_at FROM comments "
            "WHERE post_id = ? ORDER BY created_at, id LIMIT ?",
            (post_id, limit),
        ).fetchall()
        comments = [_row_to_comment(row) for row in rows]
        self._attach_votes("comment", comments)
        return comments

    def update_comment(self, comment_id: str, body: str) -> Optional[Comment]:
        """Replace a comment's body and bump updated_at. None if it does not exist."""
        cursor = self._db.execute(
            "UPDATE comments SET body = ?, updated_at = ? WHERE id = ?",
            (body, _now().isoformat(), comment_id),
        )
        self._db.commit()
        if cursor.rowcount == 0:
            return None
        return self.get_comment(comment_id)

    def delete_comment(self, comment_id: str) -> bool:
        """Delete a comment and decrement its post's comment count in one transaction.

        Returns:
            True if deleted, False if not found.
        """
        with self._lock, self._db.immediate():
            row = self._db.execute(
                "SELECT post_id FROM comments WHERE id = ?", (comment_id,)
            ).fetchone()
            if row is None:
                return False
            self._db.execute("DELETE FROM comments WHERE id = ?", (comment_id,))
            self._db.execute(
                "UPDATE posts SET comment_count = MAX(comment_count - 1, 0) WHERE id = ?",
                (row["post_id"],),
            )
        return True

    # -------------------------------------------------------------------------
    # Votes
    # -------------------------------------------------------------------------

    def vote_members(self, kind: VoteTarget, target_id: str) -> tuple[set[str], set[str]]:
        """Upvoter and downvoter ids of a post or comment."""
        table, column = _vote_table(kind)
        upvotes: set[str] = set()
        downvotes: set[str] = set()
        rows = self._db.execute(
            f"SELECT user_id, direction FROM {table} WHERE {column} = ?", (target_id,)
        )
        for row in rows:
            if row["direction"] == VoteDirection.UP.value:
                upvotes.add(row["user_id"])
            else:
                downvotes.add(row["user_id"])
        return upvotes, downvotes

    def get_vote(self, kind: VoteTarget, target_id: str, user_id: str) -> Optional[VoteDirection]:
        table, column = _vote_table(kind)
        row = self._db.execute(
            f"SELECT direction FROM {table} WHERE {column} = ? AND user_id = ?",
            (target_id, user_id),
        ).fetchone()
        return VoteDirection(row["direction"]) if row else None

    def count_votes(self, kind: VoteTarget, target_id: str) -> tuple[int, int]:
        """Authoritative (upvotes, downvotes) for a post or comment."""
        table, column = _vote_table(kind)
        return self._count(table, column, target_id)

    def _count(self, table: str, column: str, target_id: str) -> tuple[int, int]:
        row = self._db.execute(
            f"""
            SELECT
                COALESCE(SUM(direction = 'up'), 0) AS up,
                COALESCE(SUM(direction = 'down'), 0) AS down
            FROM {table} WHERE {column} = ?
            """,
            (target_id,),
        ).fetchone()
        return row["up"], row["down"]

    def transition_vote(
        self,
        kind: VoteTarget,
        target_id: str,
        user_id: str,
        resolve: Callable[[Optional[VoteDirection]], Optional[VoteDirection]],
    ) -> VoteTransition:
        """Atomically move a user's vote to the state chosen by resolve.

        resolve receives the current vote (None when the user has not voted)
        and returns the new one. Reading the current vote, writing the new
        one and counting the target's votes happen in a single BEGIN IMMEDIATE
        transaction, so concurrent transitions for the same target are
        serialized and each one sees the counts its own change produced.
        """
        table, column = _vote_table(kind)
        with self._lock, self._db.immediate():
            row = self._db.execute(
                f"SELECT direction FROM {table} WHERE {column} = ? AND user_id = ?",
                (target_id, user_id),
            ).fetchone()
            previous = VoteDirection(row["direction"]) if row else None
            new = resolve(previous)
            if new is None and previous is not None:
                self._db.execute(
                    f"DELETE FROM {table} WHERE {column} = ? AND user_id = ?",
                    (target_id, user_id),
                )
            elif new is not None and new != previous:
                self._db.execute(
                    f"""
                    INSERT INTO {table} ({column}, user_id, direction, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT({column}, user_id) DO UPDATE SET
                        direction = excluded.direction,
                        created_at = excluded.created_at
                    """,
                    (target_id, user_id, new.value, _now().isoformat()),
                )
            upvotes, downvotes = self._count(table, column, target_id)
        return VoteTransition(previous, new, upvotes, downvotes)

    def record_milestone(self, post_id: str, threshold: int) -> bool:
        """Mark a milestone as reached.

        Returns:
            True the first time a (post, threshold) pair is recorded, False after.
        """
        with self._lock:
            cursor = self._db.execute(
                "INSERT OR IGNORE INTO milestones (post_id, threshold, reached_at) "
                "VALUES (?, ?, ?)",
                (post_id, threshold, _now().isoformat()),
            )
            self._db.commit()
        return cursor.rowcount == 1
