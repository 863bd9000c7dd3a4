"""Prompt templates for the chat assistant and post enrichment."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from campus.constants.chat import (
    CONTEXT_RECORD_SEPARATOR,
    GENERAL_KNOWLEDGE_MARKER,
    NO_CONTEXT_PLACEHOLDER,
)
from campus.retrieval.schemas import ScoredCandidate


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# Chat Assistant
# =============================================================================

CHAT_SYSTEM_TEMPLATE = PromptTemplate(
    """You are an academic and placement guidance assistant for a college community platform.

RESPONSE FORMAT RULES:
1. Use Markdown headers (## for sections, ### for subsections)
2. Use bullet points for lists
3. Keep tips short and actionable
4. Do not use conversational filler such as "Great question" or "Let me help"
5. Keep a professional placement-guidance tone throughout

CONTENT INSTRUCTIONS:
1. First, check whether the answer exists in the community posts below.
2. If the answer IS in the posts:
   - Cite the information, e.g. "According to community discussions..."
3. If the answer is NOT in the posts:
   - Start your answer with exactly: "{marker}"
   - Then provide structured, helpful advice

Context from community posts:
{context}"""
)


def format_context(candidates: Sequence[ScoredCandidate]) -> str:
    """Render retrieved posts as numbered records for the system prompt.

    Returns the no-context placeholder when there are no candidates, so the
    model always sees an explicit statement rather than an empty block.
    """
    if not candidates:
        return NO_CONTEXT_PLACEHOLDER

    records = []
    for index, candidate in enumerate(candidates, start=1):
        document = candidate.document
        records.append(
            f'[Post {index}] "{document.title}" ({document.created_at.date().isoformat()})\n'
            f"{document.body}\n"
            f"{CONTEXT_RECORD_SEPARATOR}"
        )
    return "\n\n".join(records)


def get_chat_system_prompt(candidates: Sequence[ScoredCandidate]) -> str:
    return CHAT_SYSTEM_TEMPLATE.render(
        marker=GENERAL_KNOWLEDGE_MARKER, context=format_context(candidates)
    )


# =============================================================================
# Enrichment
# =============================================================================

SUMMARY_TEMPLATE = PromptTemplate(
    """Summarize this post in 1-2 concise sentences (max {max_chars} characters). Focus on the main point.

Title: {title}
Content: {content}

Summary:"""
)

SENTIMENT_TEMPLATE = PromptTemplate(
    """Analyze the sentiment of this text. Respond with a JSON object with "score" (number from -1 to 1, where -1 is very negative, 0 is neutral, 1 is very positive) and "label" (one of: "positive", "neutral", "negative").

Text: {content}"""
)

TAGS_TEMPLATE = PromptTemplate(
    """Generate 3-{max_tags} relevant tags for this college community post. Tags should be lowercase, single words or short phrases. Respond with a JSON array of strings.

Title: {title}
Content: {content}"""
)
