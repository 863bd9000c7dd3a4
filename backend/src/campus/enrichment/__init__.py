"""Post enrichment: embeddings, summaries, sentiment and tags."""

from campus.enrichment.service import ContentEnricher, Enrichment

__all__ = ["ContentEnricher", "Enrichment"]
