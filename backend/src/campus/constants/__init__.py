"""Configuration constants.

Re-exports all constants for convenient importing:
    from campus.constants import MILESTONE_THRESHOLDS, GENERAL_KNOWLEDGE_MARKER
"""

from campus.constants.chat import *  # noqa: F403
from campus.constants.search import *  # noqa: F403
from campus.constants.votes import *  # noqa: F403
