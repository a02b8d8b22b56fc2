"""
Persistence adapter for embedding vectors.

This is the only place vectors cross the storage boundary. PostgreSQL stores
them in a pgvector column; other dialects (SQLite in tests) store a JSON
array in a text column. Business logic only ever sees ``List[float]`` or
``None``.
"""
import json
import logging
from typing import List, Optional, Sequence

from pgvector.sqlalchemy import Vector
from sqlalchemy.types import Text, TypeDecorator

from ideavault.common.exceptions import EmbeddingDimensionError

logger = logging.getLogger(__name__)


def serialize_embedding(values: Sequence[float], dimension: int) -> List[float]:
    """Validate and normalise a vector before it is written."""
    vector = [float(v) for v in values]
    if len(vector) != dimension:
        raise EmbeddingDimensionError(expected=dimension, actual=len(vector))
    return vector


def parse_embedding(raw, dimension: int) -> Optional[List[float]]:
    """
    Convert a stored value back into a vector.

    Malformed or wrong-length values come back as None so callers can skip
    the record instead of aborting a whole ranking pass.
    """
    if raw is None:
        return None
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        vector = [float(v) for v in raw]
    except (TypeError, ValueError) as exc:
        logger.warning("Discarding malformed stored embedding: %s", exc)
        return None

    if len(vector) != dimension:
        logger.warning(
            "Discarding stored embedding with dimension %d (expected %d)",
            len(vector),
            dimension,
        )
        return None
    return vector


class EmbeddingType(TypeDecorator):
    """Fixed-length vector column backed by pgvector or JSON text."""

    impl = Text
    cache_ok = True

    def __init__(self, dimension: int, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.dimension = dimension

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Vector(self.dimension))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        vector = serialize_embedding(value, self.dimension)
        if dialect.name == "postgresql":
            return vector
        return json.dumps(vector)

    def process_result_value(self, value, dialect):
        return parse_embedding(value, self.dimension)
