"""
Documents feature: near-duplicate slide removal.

Two passes run over a document:
  1. Text pass: Jaccard similarity over word sets of the extracted text
     (catches repeated slides with trivially different whitespace/punctuation).
  2. Vector pass: cosine similarity over page embeddings
     (catches rephrased or re-ordered slides the text pass misses).

Both passes are greedy: a page is compared against every page already kept,
and the first occurrence always wins.
"""

import re

import numpy as np

from studybuddy.config import get_settings
from studybuddy.core.exceptions import VectorLengthMismatchError
from studybuddy.features.documents.schemas import (
    EmbeddingDeduplicationResult,
    PageDeduplicationResult,
    PageResult,
    UniquePage,
)

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)


def _word_set(text: str) -> set[str]:
    return set(_NON_WORD.sub("", text.lower()).split())


def jaccard_similarity(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| over normalized word sets.

    Two empty texts are identical (1.0); one empty text matches nothing (0.0).
    """
    words_a = _word_set(a)
    words_b = _word_set(b)

    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0

    return len(words_a & words_b) / len(words_a | words_b)


def deduplicate_pages(
    results: list[PageResult],
    threshold: float | None = None,
) -> PageDeduplicationResult:
    """Drop pages whose text is near-identical to an earlier kept page.

    Failed pages are skipped entirely: they are neither unique nor duplicates.
    A successful page with empty text duplicates an earlier empty page.
    """
    if threshold is None:
        threshold = get_settings().JACCARD_SIMILARITY_THRESHOLD

    unique: list[UniquePage] = []
    duplicate_indices: list[int] = []

    for result in results:
        if not result.success:
            continue

        content = result.content or ""
        if any(jaccard_similarity(u.content, content) >= threshold for u in unique):
            duplicate_indices.append(result.page_number)
        else:
            unique.append(UniquePage(page_number=result.page_number, content=content))

    return PageDeduplicationResult(unique=unique, duplicate_indices=duplicate_indices)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Raises:
        VectorLengthMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise VectorLengthMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))

    # Empty or all-zero on both sides: treat as the same direction
    if norm_a == 0.0 and norm_b == 0.0:
        return 1.0
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def deduplicate_by_embeddings(
    embeddings: list[list[float]],
    threshold: float | None = None,
) -> EmbeddingDeduplicationResult:
    """Greedy semantic dedup. Returned indices are positions in `embeddings`."""
    if threshold is None:
        threshold = get_settings().COSINE_SIMILARITY_THRESHOLD

    unique_indices: list[int] = []
    duplicate_indices: list[int] = []

    for i, vector in enumerate(embeddings):
        if any(cosine_similarity(embeddings[j], vector) >= threshold for j in unique_indices):
            duplicate_indices.append(i)
        else:
            unique_indices.append(i)

    return EmbeddingDeduplicationResult(
        unique_indices=unique_indices,
        duplicate_indices=duplicate_indices,
    )
