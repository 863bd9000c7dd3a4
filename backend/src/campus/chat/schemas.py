"""Chat request and response schemas."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ChatMode(str, Enum):
    """Where an answer came from."""

    COMMUNITY = "community"
    GENERAL = "general"


class ConversationTurn(BaseModel):
    """One earlier message in the conversation.

    Accepts {"role", "text"}, {"role", "content"} or the {"role", "parts":
    [{"text"}]} shape; a "model" role is read as "assistant" and any other
    role as "user".
    """

    role: Literal["user", "assistant"]
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        role = data.get("role")
        data["role"] = "assistant" if role in ("assistant", "model") else "user"
        if "text" not in data:
            if "content" in data:
                data["text"] = data.pop("content")
            elif data.get("parts"):
                first = data.pop("parts")[0]
                data["text"] = first.get("text", "") if isinstance(first, dict) else str(first)
        return data


class ChatRequest(BaseModel):
    """A chat turn from the user."""

    message: str = Field(..., description="The question")
    history: list[ConversationTurn] = Field(default_factory=list)


class ChatSource(BaseModel):
    """A post (or general knowledge) an answer drew on."""

    id: Optional[str] = None
    title: str
    author: str
    similarity: int = Field(..., description="Similarity as a whole percentage")


class ChatAnswer(BaseModel):
    """Assistant reply."""

    answer: str
    sources: list[ChatSource] = Field(default_factory=list)
    mode: ChatMode
    posts_used: int = 0
