"""Offline embedding backfill for posts saved without an embedding."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine

from campus.embeddings.provider import EmbeddingProvider
from campus.enrichment.service import post_embedding_text
from campus.errors import ProviderUnavailable
from campus.posts.store import PostStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 1.0

# Type alias for progress callback
BackfillProgressCallback = Callable[[int, int, str], Coroutine[Any, Any, None]]


@dataclass
class BackfillReport:
    """Outcome of a backfill run."""

    found: int = 0
    embedded: int = 0
    failed: int = 0


async def backfill_embeddings(
    store: PostStore,
    embeddings: EmbeddingProvider,
    batch_size: int = DEFAULT_BATCH_SIZE,
    batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
    progress_callback: BackfillProgressCallback | None = None,
) -> BackfillReport:
    """Embed every post that has no embedding yet.

    Posts are processed in batches with a pause between batches to stay under
    provider rate limits. A post that fails to embed is counted and skipped;
    it will be picked up again by the next run.

    Args:
        store: Post store.
        embeddings: Provider used for the new embeddings.
        batch_size: Posts per batch.
        batch_delay: Seconds to wait between batches.
        progress_callback: Optional async callback (done, total, message).

    Returns:
        Counts of posts found, embedded and failed.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    posts = store.find_missing_embeddings()
    report = BackfillReport(found=len(posts))
    logger.info("Found %d posts without embeddings", report.found)

    for start in range(0, len(posts), batch_size):
        batch = posts[start : start + batch_size]
        for post in batch:
            try:
                vector = await embeddings.embed(post_embedding_text(post.title, post.body))
            except ProviderUnavailable as e:
                report.failed += 1
                logger.warning("Could not embed post %s: %s", post.id, e)
                continue
            store.set_embedding(post.id, vector)
            report.embedded += 1
            logger.debug("Embedded post %s (%d dimensions)", post.id, len(vector))

        done = start + len(batch)
        if progress_callback:
            await progress_callback(done, report.found, f"Embedded {done}/{report.found} posts")
        if done < len(posts) and batch_delay > 0:
            await asyncio.sleep(batch_delay)

    logger.info("Backfill finished: %d embedded, %d failed", report.embedded, report.failed)
    return report
