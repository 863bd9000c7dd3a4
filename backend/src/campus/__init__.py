"""Campus Connect: community forum backend with semantic search and chat."""

__version__ = "0.1.0"
