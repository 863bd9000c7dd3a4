"""Chat assistant configuration.

The assistant answers from community posts when it can. When the retrieved
posts do not contain the answer the model must start its reply with a fixed
marker; the service checks for that marker to label the answer's mode.
"""

# =============================================================================
# Mode Marker
# =============================================================================
# Part of the contract between the system prompt and the mode classifier.
# Changing it requires changing both.

GENERAL_KNOWLEDGE_MARKER = "📌 General Guidance"

# =============================================================================
# Context
# =============================================================================

NO_CONTEXT_PLACEHOLDER = "No relevant posts found in the community."
CONTEXT_RECORD_SEPARATOR = "---"

GENERAL_SOURCE_TITLE = "General Knowledge"
GENERAL_SOURCE_AUTHOR = "AI Assistant"
UNKNOWN_AUTHOR = "Unknown"
