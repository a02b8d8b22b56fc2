"""
Embedding service for generating vector embeddings using Google's text-embedding-005 model,
plus the cosine similarity used for every ranking decision.
"""
import logging
import random
import time
from collections import deque
from threading import Lock
from typing import List, Optional, Sequence

from google.genai import types
from google.genai.errors import APIError

from ideavault.common.exceptions import EmbeddingDimensionError
from ideavault.config import settings
from ideavault.core.genai_client import get_genai_client

logger = logging.getLogger(__name__)

# Embedding API limits for text-embedding-005
_MAX_CHARS_PER_EMBEDDING = 20000  # Google's limit

_rate_limit_lock = Lock()
_rate_limit_window_sec = deque()


def _apply_rate_limit() -> None:
    limit = settings.EMBEDDING_RATE_LIMIT_PER_SEC
    if limit <= 0:
        return

    with _rate_limit_lock:
        now = time.monotonic()
        while _rate_limit_window_sec and now - _rate_limit_window_sec[0] > 1.0:
            _rate_limit_window_sec.popleft()
        if len(_rate_limit_window_sec) >= limit:
            sleep_time = 1.0 - (now - _rate_limit_window_sec[0])
            if sleep_time > 0:
                logger.info("Embedding rate limit hit (per_sec=%d). Sleeping %.2fs", limit, sleep_time)
                time.sleep(sleep_time)
                now = time.monotonic()
        _rate_limit_window_sec.append(now)


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, APIError):
        code = getattr(exc, "code", None)
        if code == 429 or (isinstance(code, int) and code >= 500):
            return True
    text = str(exc).lower()
    return "429" in text or "resource_exhausted" in text or "quota" in text


def _get_backoff_seconds(attempt: int) -> float:
    base = settings.EMBEDDING_BACKOFF_BASE_SECONDS * (2 ** attempt)
    backoff = min(settings.EMBEDDING_BACKOFF_MAX_SECONDS, base)
    if settings.EMBEDDING_BACKOFF_JITTER_SECONDS > 0:
        backoff += random.uniform(0.0, settings.EMBEDDING_BACKOFF_JITTER_SECONDS)
    return backoff


def _embed_content_with_retry(contents, task_type: str):
    client = get_genai_client(settings.EMBEDDING_TIMEOUT_SECONDS)
    max_retries = max(0, settings.EMBEDDING_MAX_RETRIES)
    for attempt in range(max_retries + 1):
        try:
            _apply_rate_limit()
            return client.models.embed_content(
                model=settings.EMBEDDING_MODEL,
                contents=contents,
                config=types.EmbedContentConfig(
                    task_type=task_type,
                    output_dimensionality=settings.EMBEDDING_DIMENSION,
                ),
            )
        except Exception as exc:
            if not _is_retryable_error(exc) or attempt >= max_retries:
                raise
            sleep_time = _get_backoff_seconds(attempt)
            logger.warning(
                "Embedding request failed with retryable error: %s. Retrying in %.2fs (attempt %d/%d)",
                exc,
                sleep_time,
                attempt + 1,
                max_retries,
            )
            time.sleep(sleep_time)


def _extract_embedding(response) -> Optional[List[float]]:
    embeddings = getattr(response, "embeddings", None)
    if not embeddings:
        return None
    values = getattr(embeddings[0], "values", None)
    return list(values) if values is not None else None


def generate_embedding(text: str, task_type: str = "RETRIEVAL_DOCUMENT") -> Optional[List[float]]:
    """
    Generate embedding for a single text.

    Args:
        text: The text to generate embedding for
        task_type: RETRIEVAL_DOCUMENT for stored notes, RETRIEVAL_QUERY for searches

    Returns:
        List of floats of length EMBEDDING_DIMENSION, or None if generation fails
    """
    if not text or not text.strip():
        logger.warning("Empty text provided for embedding generation")
        return None

    if len(text) > _MAX_CHARS_PER_EMBEDDING:
        logger.warning("Truncating text to %d characters", _MAX_CHARS_PER_EMBEDDING)
        text = text[:_MAX_CHARS_PER_EMBEDDING]

    try:
        response = _embed_content_with_retry(text, task_type)
        embedding = _extract_embedding(response)
        if embedding is None:
            logger.error("No embeddings found in response")
            return None
        logger.info("Successfully generated embedding (dim=%d, task=%s)", len(embedding), task_type)
        return embedding
    except Exception as e:
        logger.error("Failed to generate embedding: %s", e, exc_info=True)
        return None


def generate_query_embedding(query: str) -> Optional[List[float]]:
    """Generate embedding specifically for search queries."""
    return generate_embedding(query, task_type="RETRIEVAL_QUERY")


def generate_document_embedding(document: str) -> Optional[List[float]]:
    """Generate embedding specifically for note transcripts."""
    return generate_embedding(document, task_type="RETRIEVAL_DOCUMENT")


def validate_embedding(embedding: Optional[Sequence[float]]) -> List[float]:
    """Reject vectors that are missing or not exactly EMBEDDING_DIMENSION long."""
    if embedding is None:
        raise EmbeddingDimensionError(expected=settings.EMBEDDING_DIMENSION, actual=0)
    if len(embedding) != settings.EMBEDDING_DIMENSION:
        raise EmbeddingDimensionError(expected=settings.EMBEDDING_DIMENSION, actual=len(embedding))
    return list(embedding)


def calculate_cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Returns a score in [-1, 1]. Empty vectors, mismatched lengths and
    zero-magnitude vectors all score 0.0 rather than raising.
    """
    if not embedding1 or not embedding2:
        return 0.0

    if len(embedding1) != len(embedding2):
        logger.error("Embedding dimensions don't match: %d vs %d", len(embedding1), len(embedding2))
        return 0.0

    dot_product = sum(a * b for a, b in zip(embedding1, embedding2))
    magnitude1 = sum(a * a for a in embedding1) ** 0.5
    magnitude2 = sum(b * b for b in embedding2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    similarity = dot_product / (magnitude1 * magnitude2)
    # Rounding can push parallel vectors a hair past 1
    return max(-1.0, min(1.0, similarity))
