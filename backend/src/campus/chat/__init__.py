"""Retrieval-augmented chat assistant."""

from campus.chat.schemas import ChatAnswer, ChatMode, ChatRequest, ChatSource, ConversationTurn
from campus.chat.service import RAGAssistant

__all__ = [
    "ChatAnswer",
    "ChatMode",
    "ChatRequest",
    "ChatSource",
    "ConversationTurn",
    "RAGAssistant",
]
