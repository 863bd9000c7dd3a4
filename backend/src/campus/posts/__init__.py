"""Posts, comments and their storage."""

from campus.posts.models import Comment, Document, Sentiment, User, VoteDirection
from campus.posts.store import PostStore

__all__ = ["Comment", "Document", "PostStore", "Sentiment", "User", "VoteDirection"]
