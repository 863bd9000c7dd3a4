"""Command line entry point for the offline indexing jobs.

    python -m campus.indexing backfill [--batch-size 5] [--delay 1.0]
    python -m campus.indexing seed path/to/seed.yaml [--enrich]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from campus.config import load_settings
from campus.db.connection import Database
from campus.db.migrations import run_migrations
from campus.embeddings.provider import get_embedding_provider
from campus.enrichment.service import ContentEnricher
from campus.errors import CampusError
from campus.indexing.seed import load_seed_file
from campus.indexing.service import (
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    backfill_embeddings,
)
from campus.llm.client import LLMClient
from campus.main import DATE_FORMAT, LOG_FORMAT
from campus.posts.store import PostStore

logger = logging.getLogger("campus.indexing")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="campus-index", description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    backfill = commands.add_parser("backfill", help="Embed posts that have no embedding")
    backfill.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    backfill.add_argument("--delay", type=float, default=DEFAULT_BATCH_DELAY_SECONDS)

    seed = commands.add_parser("seed", help="Load users and posts from a YAML file")
    seed.add_argument("path", type=Path)
    seed.add_argument(
        "--enrich", action="store_true", help="Embed and enrich posts while loading"
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    db = Database(settings.db_path)
    try:
        run_migrations(db)
        store = PostStore(db)
        embeddings = get_embedding_provider(settings)

        if args.command == "backfill":
            report = await backfill_embeddings(
                store, embeddings, batch_size=args.batch_size, batch_delay=args.delay
            )
            print(f"Found {report.found}, embedded {report.embedded}, failed {report.failed}")
            return 1 if report.failed else 0

        enricher = None
        if args.enrich:
            llm = LLMClient(
                provider=settings.llm_provider,
                model=settings.llm_model,
                api_key=settings.llm_api_key,
                endpoint=settings.llm_endpoint,
                log_path=settings.llm_log_path,
            )
            enricher = ContentEnricher(
                llm,
                embeddings,
                summary_min_length=settings.enrichment.summary_min_length,
                summary_max_chars=settings.enrichment.summary_max_chars,
                max_tags=settings.enrichment.max_tags,
            )
        seeded = await load_seed_file(args.path, store, enricher)
        print(f"Created {seeded.users_created} users and {seeded.posts_created} posts")
        return 0
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=logging.DEBUG if args.verbose else logging.INFO,
        force=True,
    )
    try:
        return asyncio.run(_run(args))
    except CampusError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
