"""Semantic retrieval over embedded posts."""

from campus.retrieval.retriever import CandidateRetriever
from campus.retrieval.schemas import ScoredCandidate
from campus.retrieval.similarity import cosine_similarity

__all__ = ["CandidateRetriever", "ScoredCandidate", "cosine_similarity"]
