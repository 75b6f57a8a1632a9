"""
Knowledge feature: Embedding utility functions.
Calls the OpenRouter (OpenAI-compatible) /embeddings endpoint with the
caller's resolved API key.

The request is made with httpx rather than a LangChain Embeddings model:
keys are per user (BYOK) and the raw response is needed to re-sort items by
their `index` and check dimensions before anything is stored.
"""

import logging

import httpx
from pydantic import ValidationError

from studybuddy.config import get_settings
from studybuddy.core.exceptions import EmbeddingError
from studybuddy.features.knowledge.schemas import EmbeddingResponse

logger = logging.getLogger(__name__)


def _build_client() -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=settings.OPENROUTER_BASE_URL.rstrip("/"),
        timeout=float(settings.EMBEDDING_TIMEOUT),
    )


async def _request_embeddings(payload: str | list[str], api_key: str) -> list[list[float]]:
    settings = get_settings()
    if not api_key:
        raise EmbeddingError("No API key provided for embeddings")

    try:
        async with _build_client() as client:
            response = await client.post(
                "/embeddings",
                headers={"Authorization": f"Bearer {api_key}"},
                json={"model": settings.EMBEDDING_MODEL, "input": payload},
            )
    except httpx.HTTPError as e:
        raise EmbeddingError(f"Embedding request failed: {e}") from e

    if response.status_code >= 400:
        raise EmbeddingError(
            f"Embedding failed: {response.status_code} {response.reason_phrase}",
            detail=response.text[:500],
        )

    try:
        body = EmbeddingResponse.model_validate(response.json())
    except (ValidationError, ValueError) as e:
        raise EmbeddingError(f"Malformed embedding response: {e}") from e

    # Providers may return items out of order
    vectors = [item.embedding for item in sorted(body.data, key=lambda item: item.index)]

    dim = settings.EMBEDDING_DIMENSIONS
    for i, vector in enumerate(vectors):
        if len(vector) != dim:
            raise EmbeddingError(
                f"Embedding {i} has {len(vector)} dimensions, expected {dim}"
            )
    return vectors


async def embed_text(text: str, api_key: str) -> list[float]:
    """Generate embedding vector for a single text string (search queries).

    Args:
        text: The text to embed.
        api_key: OpenRouter key (BYOK or shared).

    Returns:
        A list of floats (EMBEDDING_DIMENSIONS long).
    """
    vectors = await _request_embeddings(text, api_key)
    if not vectors:
        raise EmbeddingError("Embedding response contained no vectors")
    return vectors[0]


async def embed_batch(texts: list[str], api_key: str) -> list[list[float]]:
    """Generate embedding vectors for multiple texts in one request.

    Returns vectors in input order. Empty input makes no request.
    """
    if not texts:
        return []

    vectors = await _request_embeddings(texts, api_key)
    if len(vectors) != len(texts):
        raise EmbeddingError(
            f"Embedding response returned {len(vectors)} vectors for {len(texts)} inputs"
        )
    logger.debug(f"Embedded {len(texts)} texts")
    return vectors
