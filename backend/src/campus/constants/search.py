"""Semantic search configuration.

Search embeds the query, scores every embedded post by cosine similarity and
returns the best matches. Departments double as the retrieval scope.
"""

# =============================================================================
# Scopes
# =============================================================================
# Posts belong to exactly one department. "General" is a catch-all department
# for posts, but as a search filter it means "every department".

ALL_SCOPES = "General"

# =============================================================================
# Messages
# =============================================================================
# Shown when nothing has been embedded yet, so callers can tell an empty index
# apart from a query with no relevant posts.

NOT_INDEXED_MESSAGE = (
    "No posts have been indexed yet. Run the embedding backfill to index existing posts."
)
