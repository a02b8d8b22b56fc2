class EmbeddingDimensionError(ValueError):
    """Raised when a vector does not have the system-wide embedding length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding has {actual} dimensions, expected {expected}")


class TranscriptionError(Exception):
    """Speech-to-text failed, timed out, or returned nothing usable."""
