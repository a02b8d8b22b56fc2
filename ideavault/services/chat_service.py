import logging
from datetime import datetime
from typing import Optional

from fastapi import status
from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.exceptions import EmbeddingDimensionError
from ideavault.common.response_common import ResponseCommon
from ideavault.services.rag_service import rag_service
from ideavault.services.search_service import search_service

logger = logging.getLogger(__name__)


class ChatService:
    """Question answering over the user's notes."""

    def answer_question(
        self,
        db: Session,
        user_id: str,
        question: str,
        now: Optional[datetime] = None,
    ) -> ResponseCommon:
        question = (question or "").strip()
        if not question:
            return ResponseCommon.error_response(
                message=CommonMessage.QUESTION_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )

        logger.info("User %s asked: %s", user_id, question)
        try:
            ranked = search_service.retrieve(db, user_id, question, now)
        except EmbeddingDimensionError as exc:
            logger.error("Question embedding rejected for user %s: %s", user_id, exc)
            return ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_INVALID,
                code=status.HTTP_502_BAD_GATEWAY,
            )
        if ranked is None:
            return ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_FAILED,
                code=status.HTTP_502_BAD_GATEWAY,
            )

        notes = [note for note, _ in ranked]
        logger.info("Found %d relevant notes for user %s", len(notes), user_id)
        answer = rag_service.generate_answer(question, notes)

        return ResponseCommon.success_response(
            data={"answer": answer, "relevant_notes_count": len(notes)},
            message=CommonMessage.CHAT_SUCCESS,
        )


chat_service = ChatService()
