import logging

from google.genai import types

from ideavault.common.constants import AIPrompts
from ideavault.common.utils import build_label_user_prompt
from ideavault.config import settings
from ideavault.core.genai_client import get_genai_client

logger = logging.getLogger(__name__)


class LabelService:
    """Names clusters with a short label from the generative model."""

    def __init__(self):
        self.model_name = settings.GENERATION_MODEL
        self.sample_chars = settings.LABEL_SAMPLE_CHARS
        self.fallback = settings.LABEL_FALLBACK

    def generate_cluster_label(self, sample_text: str) -> str:
        """
        Ask the model for a <=3 word category name for ``sample_text``.

        Best-effort: provider errors and empty replies both yield the
        fallback label instead of raising.
        """
        sample = (sample_text or "").strip()[: self.sample_chars]
        if not sample:
            return self.fallback

        try:
            client = get_genai_client(settings.GENERATION_TIMEOUT_SECONDS)
            response = client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Content(
                        role="user",
                        parts=[types.Part(text=build_label_user_prompt(sample))],
                    ),
                ],
                config=types.GenerateContentConfig(
                    system_instruction=AIPrompts.CLUSTER_LABEL_SYSTEM_PROMPT,
                    max_output_tokens=20,
                ),
            )
            label = self._clean_label(response.text)
        except Exception as exc:
            logger.error("Cluster label generation failed: %s", exc, exc_info=True)
            return self.fallback

        if not label:
            logger.warning("Label generator returned nothing usable, using fallback")
            return self.fallback
        return label

    @staticmethod
    def _clean_label(text) -> str:
        if not text:
            return ""
        label = text.strip().splitlines()[0].strip() if text.strip() else ""
        # Models like to wrap the answer in quotes
        label = label.strip("\"'` ").strip()
        return label[:255]


label_service = LabelService()
