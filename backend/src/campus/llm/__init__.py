# backend/src/campus/llm/__init__.py
"""LLM client abstraction."""

from campus.llm.client import (
    LLMAuthenticationError,
    LLMClient,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
)

__all__ = [
    "LLMAuthenticationError",
    "LLMClient",
    "LLMConnectionError",
    "LLMError",
    "LLMRateLimitError",
]
