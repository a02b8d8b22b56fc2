import logging
from typing import Iterable

from google.genai import types

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import AIPrompts
from ideavault.common.utils import build_rag_user_prompt
from ideavault.config import settings
from ideavault.core.genai_client import get_genai_client

logger = logging.getLogger(__name__)


class RagService:
    """Retrieval-then-generate answers over a user's notes."""

    def __init__(self):
        self.model_name = settings.GENERATION_MODEL

    def build_context(self, notes: Iterable, max_tokens: int = 3000) -> str:
        """Render notes as numbered, dated one-liners, respecting a size limit."""
        max_chars = max_tokens * 4
        context_parts = []
        total_chars = 0

        for index, note in enumerate(notes, start=1):
            date = note.created_at.strftime("%Y-%m-%d") if note.created_at else "unknown date"
            transcript = " ".join((note.transcript or "").split())
            line = f"{index}. [{date}] {transcript}"
            if total_chars + len(line) > max_chars:
                break
            context_parts.append(line)
            total_chars += len(line)

        if not context_parts:
            return AIPrompts.RAG_EMPTY_CONTEXT
        return "\n\n".join(context_parts)

    def generate_answer(self, question: str, notes: Iterable) -> str:
        context = self.build_context(notes)
        answer = self._generate_response(
            system_prompt=AIPrompts.RAG_SYSTEM_PROMPT,
            user_prompt=build_rag_user_prompt(context, question.strip()),
            fallback=CommonMessage.RAG_GENERATION_FAILED,
        )
        answer = (answer or "").strip()
        return answer or CommonMessage.RAG_NO_ANSWER

    def _generate_response(self, system_prompt: str, user_prompt: str, fallback: str) -> str:
        try:
            client = get_genai_client(settings.GENERATION_TIMEOUT_SECONDS)
            response = client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Content(role="user", parts=[types.Part(text=user_prompt)]),
                ],
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    max_output_tokens=500,
                    temperature=0.7,
                ),
            )
            return response.text
        except Exception as exc:
            logger.error("RAG generation failed: %s", exc, exc_info=True)
            return fallback


rag_service = RagService()
