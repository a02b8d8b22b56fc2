"""
Semantic search over a user's notes.

Retrieval is an exact cosine scan of the user's notes; collections are
per-user and small, so no approximate index is used.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from fastapi import status
from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.exceptions import EmbeddingDimensionError
from ideavault.common.response_common import ResponseCommon
from ideavault.common.utils import ensure_utc, note_to_dict, utc_now
from ideavault.config import settings
from ideavault.models import Note
from ideavault.services import embedding_service
from ideavault.services.rag_service import rag_service

logger = logging.getLogger(__name__)

ScoredNote = Tuple[Note, float]


class SearchService:

    def detect_temporal_filter(self, query: str, now: Optional[datetime] = None) -> Optional[Tuple[datetime, datetime]]:
        """
        Map time words in the query to a half-open UTC interval [start, end).

        Keyword matching only; queries without a known phrase return None and
        fall through to pure semantic ranking.
        """
        text = (query or "").lower()
        now = ensure_utc(now or utc_now())
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)

        if "today" in text:
            return today, tomorrow
        if "yesterday" in text:
            return today - timedelta(days=1), today
        if "last week" in text or "past week" in text:
            return today - timedelta(days=7), tomorrow
        if "this week" in text:
            monday = today - timedelta(days=today.weekday())
            return monday, tomorrow
        return None

    def _fetch_candidates(
        self, db: Session, user_id: str, interval: Optional[Tuple[datetime, datetime]]
    ) -> List[Note]:
        query = db.query(Note).filter(Note.user_id == user_id)
        if interval:
            start, end = interval
            query = query.filter(
                Note.created_at >= start,
                Note.created_at < end,
                Note.transcript != "",
            )
        else:
            query = query.filter(Note.embedding.isnot(None))
        return query.order_by(Note.created_at.desc(), Note.id.desc()).all()

    def rank_notes(
        self,
        candidates: Sequence[Note],
        query_embedding: Sequence[float],
        temporal: bool,
    ) -> List[ScoredNote]:
        """Score, filter, sort and truncate candidates against the query."""
        scored = []
        for note in candidates:
            if note.embedding is None:
                if not temporal:
                    continue
                # Date match alone counts as a neutral signal
                scored.append((note, settings.SEARCH_TEMPORAL_DEFAULT_SCORE))
                continue
            similarity = embedding_service.calculate_cosine_similarity(query_embedding, note.embedding)
            if not temporal and similarity < settings.SEARCH_MIN_SIMILARITY:
                continue
            scored.append((note, similarity))

        scored.sort(key=lambda item: item[1], reverse=True)
        limit = settings.SEARCH_TEMPORAL_LIMIT if temporal else settings.SEARCH_LIMIT
        return scored[:limit]

    def retrieve(
        self,
        db: Session,
        user_id: str,
        query: str,
        now: Optional[datetime] = None,
    ) -> Optional[List[ScoredNote]]:
        """
        Ranked notes for ``query``. Returns None when the query embedding
        could not be generated.

        Raises:
            EmbeddingDimensionError: the provider returned a vector of the
                wrong length
        """
        interval = self.detect_temporal_filter(query, now)
        if interval:
            logger.info("Applying temporal filter %s - %s for user %s", interval[0], interval[1], user_id)

        candidates = self._fetch_candidates(db, user_id, interval)
        logger.info(
            "Found %d candidate notes for user %s%s",
            len(candidates),
            user_id,
            " matching date filter" if interval else "",
        )
        if not candidates:
            return []

        query_embedding = embedding_service.generate_query_embedding(query)
        if query_embedding is None:
            return None
        query_embedding = embedding_service.validate_embedding(query_embedding)
        return self.rank_notes(candidates, query_embedding, temporal=interval is not None)

    def find_related_notes(
        self,
        note: Note,
        pool: Sequence[Note],
        limit: Optional[int] = None,
    ) -> List[ScoredNote]:
        """Top matches for ``note`` among ``pool``, excluding itself."""
        if note.embedding is None:
            return []
        limit = settings.RELATED_NOTES_LIMIT if limit is None else limit
        related = [
            (other, embedding_service.calculate_cosine_similarity(note.embedding, other.embedding))
            for other in pool
            if other.id != note.id and other.embedding is not None
        ]
        related.sort(key=lambda item: item[1], reverse=True)
        return related[:limit]

    def search(self, db: Session, user_id: str, query: str, now: Optional[datetime] = None) -> ResponseCommon:
        """
        Ranked results with related notes, plus a generated answer when the
        results are empty (``is_fallback``) or the best score is weak.
        """
        query = (query or "").strip()
        if not query:
            return ResponseCommon.error_response(
                message=CommonMessage.QUERY_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            ranked = self.retrieve(db, user_id, query, now)
        except EmbeddingDimensionError as exc:
            logger.error("Query embedding rejected for user %s: %s", user_id, exc)
            return ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_INVALID,
                code=status.HTTP_502_BAD_GATEWAY,
            )
        if ranked is None:
            return ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_FAILED,
                code=status.HTTP_502_BAD_GATEWAY,
            )

        ai_answer = None
        is_fallback = False
        if not ranked:
            logger.info("No search results for user %s, answering from context", user_id)
            ai_answer = rag_service.generate_answer(query, [])
            is_fallback = True
        elif ranked[0][1] < settings.SEARCH_LOW_SIMILARITY:
            logger.info("Weak top score %.3f for user %s, adding generated answer", ranked[0][1], user_id)
            ai_answer = rag_service.generate_answer(query, [note for note, _ in ranked])

        results = []
        if ranked:
            pool = db.query(Note).filter(Note.user_id == user_id, Note.embedding.isnot(None)).all()
            for note, similarity in ranked:
                related = self.find_related_notes(note, pool)
                results.append({
                    "note": note_to_dict(note),
                    "similarity": similarity,
                    "related_notes": [
                        {"note": note_to_dict(other), "similarity": score}
                        for other, score in related
                    ],
                })

        return ResponseCommon.success_response(
            data={"results": results, "ai_answer": ai_answer, "is_fallback": is_fallback},
            message=CommonMessage.SEARCH_SUCCESS,
        )


search_service = SearchService()
