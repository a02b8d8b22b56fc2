from functools import lru_cache

from google import genai
from google.genai import types

from ideavault.config import settings


@lru_cache(maxsize=None)
def get_genai_client(timeout_seconds: float) -> genai.Client:
    """Vertex AI client whose HTTP calls are bounded by ``timeout_seconds``."""
    return genai.Client(
        vertexai=True,
        project=settings.GOOGLE_CLOUD_PROJECT,
        location=settings.GOOGLE_CLOUD_LOCATION,
        http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
    )
