"""Retrieval result types."""

from dataclasses import dataclass

from campus.posts.models import Document


@dataclass(frozen=True)
class ScoredCandidate:
    """A post paired with its similarity to a query. Never persisted."""

    document: Document
    similarity: float
