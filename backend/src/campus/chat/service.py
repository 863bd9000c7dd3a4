"""Retrieval-augmented chat grounded in community posts."""

import logging
from collections.abc import Sequence

from campus.constants.chat import (
    GENERAL_KNOWLEDGE_MARKER,
    GENERAL_SOURCE_AUTHOR,
    GENERAL_SOURCE_TITLE,
    UNKNOWN_AUTHOR,
)
from campus.chat.schemas import ChatAnswer, ChatMode, ChatSource, ConversationTurn
from campus.errors import ProviderUnavailable, RAGFailure, ValidationError
from campus.llm.client import LLMClient
from campus.prompts import get_chat_system_prompt
from campus.retrieval.retriever import CandidateRetriever
from campus.retrieval.schemas import ScoredCandidate

logger = logging.getLogger(__name__)


def normalize_history(
    history: Sequence[ConversationTurn], max_turns: int | None = None
) -> list[dict[str, str]]:
    """Turn history into alternating user/assistant messages.

    Blank turns are dropped, consecutive turns with the same role are merged
    and leading assistant turns are dropped, so the first message after the
    system prompt is always from the user.
    """
    turns = [turn for turn in history if turn.text.strip()]
    if max_turns is not None:
        turns = turns[-max_turns:] if max_turns > 0 else []

    messages: list[dict[str, str]] = []
    for turn in turns:
        if not messages and turn.role == "assistant":
            continue
        if messages and messages[-1]["role"] == turn.role:
            messages[-1]["content"] += "\n\n" + turn.text
        else:
            messages.append({"role": turn.role, "content": turn.text})
    return messages


def build_turns(
    system_prompt: str,
    history: Sequence[ConversationTurn],
    question: str,
    max_turns: int | None = None,
) -> list[dict[str, str]]:
    """System prompt, normalized history, then the question as the last user turn."""
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(normalize_history(history, max_turns))
    if messages[-1]["role"] == "user":
        messages[-1]["content"] += "\n\n" + question
    else:
        messages.append({"role": "user", "content": question})
    return messages


def classify_mode(answer: str) -> ChatMode:
    """General mode when the model used the general-knowledge marker."""
    return ChatMode.GENERAL if GENERAL_KNOWLEDGE_MARKER in answer else ChatMode.COMMUNITY


def build_sources(mode: ChatMode, candidates: Sequence[ScoredCandidate]) -> list[ChatSource]:
    if mode is ChatMode.GENERAL:
        return [ChatSource(title=GENERAL_SOURCE_TITLE, author=GENERAL_SOURCE_AUTHOR, similarity=0)]
    return [
        ChatSource(
            id=candidate.document.id,
            title=candidate.document.title,
            author=candidate.document.author_name or UNKNOWN_AUTHOR,
            similarity=round(candidate.similarity * 100),
        )
        for candidate in candidates
    ]


class RAGAssistant:
    """Answers questions from the most relevant community posts.

    Each call is all-or-nothing: nothing is persisted and any provider
    failure becomes a single RAGFailure.
    """

    def __init__(
        self,
        retriever: CandidateRetriever,
        llm: LLMClient,
        top_k: int = 5,
        max_question_length: int = 500,
        max_history_turns: int | None = 20,
        temperature: float | None = None,
    ) -> None:
        self._retriever = retriever
        self._llm = llm
        self._top_k = top_k
        self._max_question_length = max_question_length
        self._max_history_turns = max_history_turns
        self._temperature = temperature

    async def answer(
        self, question: str, history: Sequence[ConversationTurn] = ()
    ) -> ChatAnswer:
        """Answer a question.

        Args:
            question: The user's question. Truncated to the maximum length.
            history: Earlier turns of the conversation.

        Returns:
            The answer with its mode and sources.

        Raises:
            ValidationError: If the question is blank.
            RAGFailure: If retrieval or generation fails.
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Message is required")
        question = question[: self._max_question_length]

        try:
            candidates = await self._retriever.retrieve(question, top_k=self._top_k)
            messages = build_turns(
                get_chat_system_prompt(candidates), history, question, self._max_history_turns
            )
            text = await self._llm.complete(messages, temperature=self._temperature)
        except ProviderUnavailable as e:
            logger.error("Chat answer failed: %s", e)
            raise RAGFailure(f"Failed to generate response: {e}") from e

        text = text.strip()
        if not text:
            raise RAGFailure("The assistant returned an empty answer")

        mode = classify_mode(text)
        logger.info("Chat answered in %s mode from %d posts", mode.value, len(candidates))
        return ChatAnswer(
            answer=text,
            sources=build_sources(mode, candidates),
            mode=mode,
            posts_used=len(candidates),
        )
