"""Cosine similarity between embedding vectors."""

from collections.abc import Sequence

import numpy as np

from campus.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1, 1]. 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatch: If the vectors have different lengths.
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    # Rounding can push parallel vectors slightly past 1
    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))
