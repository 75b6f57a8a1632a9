"""
Knowledge feature: pgvector literal rendering.

Embeddings are interpolated into the `embedding` column as text, so every
element is checked before it reaches the database.
"""

import math

from studybuddy.core.exceptions import InvalidEmbeddingError


def format_vector_literal(values: list[float]) -> str:
    """Render an embedding as a pgvector literal `[v1,v2,...]`.

    Raises:
        InvalidEmbeddingError: If `values` is not a list, is empty, or holds
            anything other than finite numbers.
    """
    if not isinstance(values, (list, tuple)):
        raise InvalidEmbeddingError("Embedding must be an array")
    if len(values) == 0:
        raise InvalidEmbeddingError("Embedding array cannot be empty")

    for i, v in enumerate(values):
        # bool is an int subclass; True/False are not embeddings
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise InvalidEmbeddingError(
                f"Invalid embedding value at index {i}: must be a finite number"
            )

    return "[" + ",".join(repr(float(v)) for v in values) + "]"
