"""
Cosine similarity between embedding vectors.

Formula:
    cos(a, b) = (a · b) / (|a| × |b|)

Mathematically in [-1, 1]; text embeddings land in [0, 1] in practice.
Malformed input (dimension mismatch, zero vector) yields 0.0 instead of raising.
"""

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute cosine similarity of two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity as float, 0.0 if lengths differ or either magnitude is zero

    Example:
        >>> cosine_similarity([1.0, 0.0], [1.0, 0.0])
        1.0
        >>> cosine_similarity([1.0, 0.0], [0.0, 1.0])
        0.0
        >>> cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])
        0.0
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)

    magnitude = float(np.linalg.norm(vec_a) * np.linalg.norm(vec_b))
    if magnitude == 0.0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / magnitude)
