"""FastAPI dependency injection functions."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from campus.chat.service import RAGAssistant
from campus.config import Settings, load_settings
from campus.db.connection import Database
from campus.db.migrations import run_migrations
from campus.embeddings.provider import EmbeddingProvider, get_embedding_provider
from campus.enrichment.service import ContentEnricher
from campus.llm.client import LLMClient
from campus.notifications.registry import SessionRegistry
from campus.notifications.service import NotificationDispatcher
from campus.posts.service import PostService
from campus.posts.store import PostStore
from campus.retrieval.retriever import CandidateRetriever
from campus.search.service import RankedSearchService
from campus.votes.leaderboard import LeaderboardService
from campus.votes.ledger import CommentVoteLedger, VoteLedger


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()


# =============================================================================
# Shared Instances
# =============================================================================

_db_instance: Database | None = None
_store_instance: PostStore | None = None


def get_db() -> Database:
    """Get database connection with migrations applied."""
    global _db_instance
    settings = get_settings()

    # Check if cached connection is stale (db file was deleted)
    if _db_instance is not None and not settings.db_path.exists():
        _reset_db_instance()

    if _db_instance is None:
        _db_instance = Database(settings.db_path)
        run_migrations(_db_instance)
    return _db_instance


def get_store() -> PostStore:
    """Get the post store. One instance per connection so vote locking is shared."""
    global _store_instance
    db = get_db()
    if _store_instance is None:
        _store_instance = PostStore(db)
    return _store_instance


def _reset_db_instance() -> None:
    """Reset database and store instances (for testing only)."""
    global _db_instance, _store_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None
    _store_instance = None


_llm_instance: LLMClient | None = None


def get_llm() -> LLMClient:
    """Get LLM client instance."""
    global _llm_instance
    if _llm_instance is None:
        settings = get_settings()
        _llm_instance = LLMClient(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            endpoint=settings.llm_endpoint,
            log_path=settings.llm_log_path,
        )
    return _llm_instance


def _reset_llm_instance() -> None:
    """Reset LLM client instance (for testing only)."""
    global _llm_instance
    _llm_instance = None


_embeddings_instance: EmbeddingProvider | None = None


def get_embeddings() -> EmbeddingProvider:
    """Get embedding provider instance."""
    global _embeddings_instance
    if _embeddings_instance is None:
        _embeddings_instance = get_embedding_provider(get_settings())
    return _embeddings_instance


def _reset_embeddings_instance() -> None:
    """Reset embedding provider instance (for testing only)."""
    global _embeddings_instance
    _embeddings_instance = None


_session_registry = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    """Get the process-wide notification session registry."""
    return _session_registry


# =============================================================================
# Request-scoped Services
# =============================================================================


def get_dispatcher(
    registry: SessionRegistry = Depends(get_session_registry),
) -> NotificationDispatcher:
    return NotificationDispatcher(get_db(), registry)


def get_retriever(
    embeddings: EmbeddingProvider = Depends(get_embeddings),
    settings: Settings = Depends(get_settings),
) -> CandidateRetriever:
    return CandidateRetriever(
        get_store(), embeddings, default_top_k=settings.retrieval.search_top_k
    )


def get_search_service(
    retriever: CandidateRetriever = Depends(get_retriever),
    settings: Settings = Depends(get_settings),
) -> RankedSearchService:
    return RankedSearchService(
        get_store(),
        retriever,
        default_limit=settings.retrieval.search_top_k,
        max_limit=settings.retrieval.max_search_limit,
        similarity_decimals=settings.retrieval.similarity_decimals,
    )


def get_rag_assistant(
    retriever: CandidateRetriever = Depends(get_retriever),
    llm: LLMClient = Depends(get_llm),
    settings: Settings = Depends(get_settings),
) -> RAGAssistant:
    return RAGAssistant(
        retriever,
        llm,
        top_k=settings.retrieval.chat_top_k,
        max_question_length=settings.chat.max_question_length,
        max_history_turns=settings.chat.max_history_turns,
        temperature=settings.chat.temperature,
    )


def get_enricher(
    llm: LLMClient = Depends(get_llm),
    embeddings: EmbeddingProvider = Depends(get_embeddings),
    settings: Settings = Depends(get_settings),
) -> ContentEnricher:
    return ContentEnricher(
        llm,
        embeddings,
        summary_min_length=settings.enrichment.summary_min_length,
        summary_max_chars=settings.enrichment.summary_max_chars,
        max_tags=settings.enrichment.max_tags,
    )


def get_post_service(
    enricher: ContentEnricher = Depends(get_enricher),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> PostService:
    return PostService(get_store(), enricher, dispatcher)


def get_vote_ledger(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> VoteLedger:
    return VoteLedger(get_store(), dispatcher)


def get_comment_vote_ledger() -> CommentVoteLedger:
    return CommentVoteLedger(get_store())


def get_leaderboard_service(settings: Settings = Depends(get_settings)) -> LeaderboardService:
    return LeaderboardService(get_db(), month_days=settings.leaderboard.month_days)


# =============================================================================
# Identity
# =============================================================================


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """The acting user, as established by the authentication layer in front of us.

    Raises:
        HTTPException: 401 if no user is identified.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id.strip()
