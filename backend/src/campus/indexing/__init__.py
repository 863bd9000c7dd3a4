"""Offline indexing jobs: embedding backfill and seeding."""

from campus.indexing.seed import SeedReport, load_seed_file
from campus.indexing.service import BackfillReport, backfill_embeddings

__all__ = ["BackfillReport", "SeedReport", "backfill_embeddings", "load_seed_file"]
