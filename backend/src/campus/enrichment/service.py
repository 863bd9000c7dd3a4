"""Best-effort enrichment of new and edited posts.

Embedding, summary, sentiment and tags are produced concurrently. Each has a
fallback, so a provider outage degrades a post's metadata but never blocks
the post from being saved.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from campus.embeddings.provider import EmbeddingProvider
from campus.errors import ProviderUnavailable
from campus.llm.client import LLMClient
from campus.posts.models import Sentiment
from campus.prompts import SENTIMENT_TEMPLATE, SUMMARY_TEMPLATE, TAGS_TEMPLATE

logger = logging.getLogger(__name__)

SENTIMENT_LABELS = ("positive", "neutral", "negative")

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


@dataclass
class Enrichment:
    """Generated metadata for a post. embedding is None when it could not be made."""

    embedding: Optional[list[float]] = None
    summary: str = ""
    sentiment: Sentiment = field(default_factory=Sentiment)
    tags: list[str] = field(default_factory=list)


def post_embedding_text(title: str, body: str) -> str:
    return f"{title}\n\n{body}"


def truncate_summary(body: str, max_chars: int = 150) -> str:
    """Fallback summary: the start of the body, with an ellipsis when cut."""
    return body[:max_chars] + ("..." if len(body) > max_chars else "")


def parse_sentiment(text: str) -> Sentiment:
    """Read a {"score", "label"} object out of model output.

    Raises:
        ValueError: If no usable object is present.
    """
    match = _JSON_OBJECT.search(text)
    if not match:
        raise ValueError("No JSON object in sentiment response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Sentiment response is not an object")
    try:
        score = max(-1.0, min(1.0, float(data.get("score", 0.0))))
    except TypeError as e:
        raise ValueError(f"Invalid sentiment score: {data.get('score')!r}") from e
    label = str(data.get("label", "neutral")).lower().strip()
    if label not in SENTIMENT_LABELS:
        raise ValueError(f"Unknown sentiment label: {label!r}")
    return Sentiment(score=score, label=label)


def parse_tags(text: str, max_tags: int = 5) -> list[str]:
    """Read a JSON array of tags out of model output, lowercased and de-duplicated.

    Raises:
        ValueError: If no array is present.
    """
    match = _JSON_ARRAY.search(text)
    if not match:
        raise ValueError("No JSON array in tags response")
    items = json.loads(match.group(0))
    if not isinstance(items, list):
        raise ValueError("Tags response is not an array")
    tags: list[str] = []
    for raw in items:
        tag = str(raw).lower().strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:max_tags]


class ContentEnricher:
    """Generates embeddings and descriptive metadata for posts."""

    def __init__(
        self,
        llm: LLMClient,
        embeddings: EmbeddingProvider,
        summary_min_length: int = 50,
        summary_max_chars: int = 150,
        max_tags: int = 5,
    ) -> None:
        self._llm = llm
        self._embeddings = embeddings
        self._summary_min_length = summary_min_length
        self._summary_max_chars = summary_max_chars
        self._max_tags = max_tags

    async def embed_post(self, title: str, body: str) -> Optional[list[float]]:
        """Embedding of title and body, or None when the provider fails."""
        try:
            return await self._embeddings.embed(post_embedding_text(title, body))
        except ProviderUnavailable as e:
            logger.warning("Post embedding failed, saving without one: %s", e)
            return None

    async def summarize(self, title: str, body: str) -> str:
        body = body.strip()
        if len(body) < self._summary_min_length:
            return body
        try:
            summary = await self._llm.generate(
                SUMMARY_TEMPLATE.render(
                    max_chars=self._summary_max_chars, title=title, content=body
                )
            )
        except ProviderUnavailable as e:
            logger.warning("Summary generation failed: %s", e)
            return truncate_summary(body, self._summary_max_chars)
        return summary.strip() or truncate_summary(body, self._summary_max_chars)

    async def analyze_sentiment(self, body: str) -> Sentiment:
        try:
            response = await self._llm.generate_with_json(SENTIMENT_TEMPLATE.render(content=body))
            return parse_sentiment(response)
        except ProviderUnavailable as e:
            logger.warning("Sentiment analysis failed: %s", e)
        except ValueError as e:
            logger.warning("Unusable sentiment response: %s", e)
        return Sentiment()

    async def generate_tags(self, title: str, body: str) -> list[str]:
        try:
            response = await self._llm.generate_with_json(
                TAGS_TEMPLATE.render(max_tags=self._max_tags, title=title, content=body)
            )
            return parse_tags(response, self._max_tags)
        except ProviderUnavailable as e:
            logger.warning("Tag generation failed: %s", e)
        except ValueError as e:
            logger.warning("Unusable tags response: %s", e)
        return []

    async def enrich(self, title: str, body: str) -> Enrichment:
        """Run every enrichment concurrently.

        Never raises: an unexpected error in one task is logged and that
        task's fallback used.
        """
        fallbacks: tuple[Any, ...] = (
            None,
            truncate_summary(body.strip(), self._summary_max_chars),
            Sentiment(),
            [],
        )
        results = await asyncio.gather(
            self.embed_post(title, body),
            self.summarize(title, body),
            self.analyze_sentiment(body),
            self.generate_tags(title, body),
            return_exceptions=True,
        )
        values = []
        for name, result, fallback in zip(
            ("embedding", "summary", "sentiment", "tags"), results, fallbacks
        ):
            if isinstance(result, BaseException):
                logger.error("Unexpected %s enrichment failure: %s", name, result)
                values.append(fallback)
            else:
                values.append(result)
        embedding, summary, sentiment, tags = values
        return Enrichment(embedding=embedding, summary=summary, sentiment=sentiment, tags=tags)
