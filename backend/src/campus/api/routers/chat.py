"""Chat assistant endpoints."""

from datetime import datetime, UTC

from fastapi import APIRouter, Depends

from campus.api.deps import get_rag_assistant
from campus.chat.schemas import ChatAnswer, ChatRequest
from campus.chat.service import RAGAssistant

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatAnswer)
async def chat(
    request: ChatRequest,
    assistant: RAGAssistant = Depends(get_rag_assistant),
) -> ChatAnswer:
    """Answer a question from community posts, falling back to general guidance."""
    return await assistant.answer(request.message, request.history)


@router.get("/health")
async def chat_health() -> dict[str, str]:
    """Chat service health check."""
    return {
        "status": "healthy",
        "message": "Chat service is running",
        "timestamp": datetime.now(UTC).isoformat(),
    }
