"""Database migrations and schema management for Campus Connect."""

from campus.db.connection import Database

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Forum members (credentials live with the external auth service)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    department TEXT NOT NULL,
    year TEXT NOT NULL DEFAULT 'FE',
    created_at TEXT NOT NULL
);

-- Posts, the documents searched and used as chat context
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    author_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    body TEXT NOT NULL,
    department TEXT NOT NULL,
    embedding TEXT,  -- JSON array of floats, NULL until generated
    summary TEXT,
    sentiment_score REAL,
    sentiment_label TEXT,
    tags TEXT NOT NULL DEFAULT '[]',  -- JSON array of strings
    comment_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    author_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- One row per (post, user): a user is either an upvoter or a downvoter, never both
CREATE TABLE IF NOT EXISTS votes (
    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    direction TEXT NOT NULL CHECK (direction IN ('up', 'down')),
    created_at TEXT NOT NULL,
    PRIMARY KEY (post_id, user_id)
);

CREATE TABLE IF NOT EXISTS comment_votes (
    comment_id TEXT NOT NULL REFERENCES comments(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    direction TEXT NOT NULL CHECK (direction IN ('up', 'down')),
    created_at TEXT NOT NULL,
    PRIMARY KEY (comment_id, user_id)
);

-- Upvote milestones already announced; a (post, threshold) pair fires once
CREATE TABLE IF NOT EXISTS milestones (
    post_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    threshold INTEGER NOT NULL,
    reached_at TEXT NOT NULL,
    PRIMARY KEY (post_id, threshold)
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recipient_id TEXT NOT NULL,
    sender_id TEXT,
    type TEXT NOT NULL CHECK (type IN ('like', 'comment', 'reply', 'mention', 'milestone')),
    post_id TEXT REFERENCES posts(id) ON DELETE CASCADE,
    comment_id TEXT REFERENCES comments(id) ON DELETE CASCADE,
    content TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_posts_department ON posts(department);
CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at);
CREATE INDEX IF NOT EXISTS idx_comments_post ON comments(post_id);
CREATE INDEX IF NOT EXISTS idx_votes_user ON votes(user_id);
CREATE INDEX IF NOT EXISTS idx_notifications_recipient
    ON notifications(recipient_id, read, created_at);
-- A sender likes a given post at most once per recipient
CREATE UNIQUE INDEX IF NOT EXISTS idx_notifications_like_once
    ON notifications(recipient_id, sender_id, post_id) WHERE type = 'like';
"""


def run_migrations(db: Database) -> None:
    """Run database migrations to set up or upgrade schema.

    Args:
        db: Database connection to run migrations on.
    """
    try:
        result = db.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        current_version = result[0] if result else 0
    except Exception:
        # Table doesn't exist yet
        current_version = 0

    if current_version < SCHEMA_VERSION:
        # executescript auto-commits, so the version insert is handled separately
        db.executescript(SCHEMA_SQL)

        db.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        db.commit()
