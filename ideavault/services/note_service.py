import logging
from typing import Optional

from fastapi import status
from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import TranscriptionStatus
from ideavault.common.exceptions import EmbeddingDimensionError
from ideavault.common.response_common import ResponseCommon
from ideavault.common.utils import note_to_dict
from ideavault.models import Cluster, Note
from ideavault.schemas.note import NoteUpdate
from ideavault.services import embedding_service
from ideavault.services.audio_service import audio_service
from ideavault.services.cluster_service import cluster_service
from ideavault.services.label_service import label_service
from ideavault.services.task_job_service import task_job_service

logger = logging.getLogger(__name__)


class NoteService:

    def _get_owned_note(self, db: Session, user_id: str, note_id: int) -> Optional[Note]:
        return db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()

    def _embed_transcript(self, transcript: str):
        """Returns (embedding, error_response); exactly one is None."""
        embedding = embedding_service.generate_document_embedding(transcript)
        if embedding is None:
            return None, ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_FAILED,
                code=status.HTTP_502_BAD_GATEWAY,
            )
        try:
            return embedding_service.validate_embedding(embedding), None
        except EmbeddingDimensionError as exc:
            logger.error("Embedding provider returned a bad vector: %s", exc)
            return None, ResponseCommon.error_response(
                message=CommonMessage.EMBEDDING_INVALID,
                code=status.HTTP_502_BAD_GATEWAY,
            )

    def create_note_from_text(self, db: Session, user_id: str, transcript: str) -> ResponseCommon:
        """
        Create a text note with its embedding.

        A matching cluster is assigned straight away. Otherwise a label is
        suggested for the caller to confirm; no cluster is created here.
        """
        transcript = (transcript or "").strip()
        if not transcript:
            return ResponseCommon.error_response(
                message=CommonMessage.TRANSCRIPT_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )

        embedding, error = self._embed_transcript(transcript)
        if error:
            return error

        try:
            note = Note(user_id=user_id, transcript=transcript, embedding=embedding)
            db.add(note)
            db.commit()
            db.refresh(note)
        except Exception as e:
            db.rollback()
            logger.error("Error creating note for user %s: %s", user_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_CREATE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        suggested_label = None
        try:
            cluster_id = cluster_service.find_best_cluster(db, user_id, embedding)
            if cluster_id is not None:
                cluster_service.set_note_cluster(db, user_id, note.id, cluster_id)
                db.refresh(note)
            else:
                suggested_label = label_service.generate_cluster_label(transcript)
        except Exception as e:
            db.rollback()
            logger.error("Cluster matching failed for new note %s: %s", note.id, e, exc_info=True)

        data = note_to_dict(note)
        data["suggested_cluster_label"] = suggested_label
        return ResponseCommon.success_response(
            data=data,
            message=CommonMessage.NOTE_CREATED_SUCCESS,
            code=status.HTTP_201_CREATED,
        )

    async def create_note_from_audio(
        self,
        db: Session,
        arq_pool,
        user_id: str,
        audio_bytes: bytes,
        content_type: Optional[str],
        duration: Optional[float] = None,
    ) -> ResponseCommon:
        """Store the artifact, create the placeholder note and queue transcription."""
        validation = audio_service.validate_audio(audio_bytes, content_type)
        if not validation.success:
            return validation

        saved = audio_service.save_audio(user_id, audio_bytes, content_type)
        if not saved.success:
            return saved
        file_info = saved.data

        try:
            note = Note(
                user_id=user_id,
                transcript="",
                audio_url=file_info["audio_url"],
                audio_path=file_info["file_path"],
                audio_content_type=file_info["content_type"],
                duration=duration,
                transcription_status=TranscriptionStatus.UPLOADED,
            )
            db.add(note)
            db.commit()
            db.refresh(note)
        except Exception as e:
            db.rollback()
            audio_service.delete_audio(file_info["file_path"])
            logger.error("Error creating audio note for user %s: %s", user_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_CREATE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        queued = await task_job_service.enqueue_transcription(arq_pool, db, user_id, note.id)
        if not queued.success:
            note.transcription_status = TranscriptionStatus.FAILED
            note.transcription_error = CommonMessage.TRANSCRIPTION_QUEUE_FAILED
            db.commit()
            db.refresh(note)
            return ResponseCommon.error_response(
                message=CommonMessage.TRANSCRIPTION_QUEUE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                data=note_to_dict(note),
            )

        data = note_to_dict(note)
        data["suggested_cluster_label"] = None
        data["job_id"] = queued.data["job_id"]
        return ResponseCommon.success_response(
            data=data,
            message=CommonMessage.AUDIO_NOTE_CREATED_SUCCESS,
            code=status.HTTP_201_CREATED,
        )

    def update_note(self, db: Session, user_id: str, note_id: int, note_data: NoteUpdate) -> ResponseCommon:
        """
        Apply a partial update.

        A new transcript is re-embedded before anything is written. A
        ``cluster_id`` in the body is taken as-is (null unassigns); the
        matcher is not consulted.
        """
        note = self._get_owned_note(db, user_id, note_id)
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        changes = note_data.model_dump(exclude_unset=True)

        new_transcript = None
        if "transcript" in changes:
            new_transcript = (changes["transcript"] or "").strip()
            if not new_transcript:
                return ResponseCommon.error_response(
                    message=CommonMessage.TRANSCRIPT_REQUIRED,
                    code=status.HTTP_400_BAD_REQUEST,
                )

        if changes.get("cluster_id") is not None:
            cluster = (
                db.query(Cluster)
                .filter(Cluster.id == changes["cluster_id"], Cluster.user_id == user_id)
                .first()
            )
            if not cluster:
                return ResponseCommon.error_response(
                    message=CommonMessage.CLUSTER_NOT_FOUND,
                    code=status.HTTP_404_NOT_FOUND,
                )

        new_embedding = None
        transcript_changed = new_transcript is not None and (
            new_transcript != note.transcript or note.embedding is None
        )
        if transcript_changed:
            new_embedding, error = self._embed_transcript(new_transcript)
            if error:
                return error

        try:
            if transcript_changed:
                note.transcript = new_transcript
                note.embedding = new_embedding
                note.transcription_error = None
                if note.transcription_status is not None and note.transcription_status != TranscriptionStatus.CLUSTERED:
                    note.transcription_status = TranscriptionStatus.TRANSCRIBED
            if "cluster_id" in changes:
                note.cluster_id = changes["cluster_id"]
            if changes.get("is_favorite") is not None:
                note.is_favorite = changes["is_favorite"]
            db.commit()
            db.refresh(note)
        except Exception as e:
            db.rollback()
            logger.error("Error updating note %s: %s", note_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_UPDATE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return ResponseCommon.success_response(
            data=note_to_dict(note),
            message=CommonMessage.NOTE_UPDATED_SUCCESS,
        )

    def toggle_favorite(self, db: Session, user_id: str, note_id: int) -> ResponseCommon:
        note = self._get_owned_note(db, user_id, note_id)
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        note.is_favorite = not note.is_favorite
        db.commit()
        db.refresh(note)
        return ResponseCommon.success_response(
            data=note_to_dict(note),
            message=CommonMessage.FAVORITE_TOGGLED_SUCCESS,
        )

    def get_note(self, db: Session, user_id: str, note_id: int) -> ResponseCommon:
        note = self._get_owned_note(db, user_id, note_id)
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        return ResponseCommon.success_response(
            data=note_to_dict(note),
            message=CommonMessage.NOTE_RETRIEVED_SUCCESS,
        )

    def list_notes(
        self,
        db: Session,
        user_id: str,
        cluster_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> ResponseCommon:
        """List the user's notes, newest first"""
        query = db.query(Note).filter(Note.user_id == user_id)
        if cluster_id is not None:
            query = query.filter(Note.cluster_id == cluster_id)

        total = query.count()
        notes = query.order_by(Note.created_at.desc(), Note.id.desc()).offset(skip).limit(limit).all()
        return ResponseCommon.success_response(
            data={"notes": [note_to_dict(note) for note in notes], "total": total},
            message=CommonMessage.NOTES_LIST_RETRIEVED_SUCCESS,
        )

    def delete_note(self, db: Session, user_id: str, note_id: int) -> ResponseCommon:
        """Delete the note row. Clusters and the audio artifact are left alone."""
        note = self._get_owned_note(db, user_id, note_id)
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        try:
            db.delete(note)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error("Error deleting note %s: %s", note_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_DELETE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return ResponseCommon.success_response(message=CommonMessage.NOTE_DELETED_SUCCESS)

    async def retry_transcription(self, db: Session, arq_pool, user_id: str, note_id: int) -> ResponseCommon:
        """Re-queue a failed audio note."""
        note = self._get_owned_note(db, user_id, note_id)
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        if not note.audio_path or note.transcription_status != TranscriptionStatus.FAILED:
            return ResponseCommon.error_response(
                message=CommonMessage.TRANSCRIPTION_NOT_RETRYABLE,
                code=status.HTTP_400_BAD_REQUEST,
            )

        note.transcription_error = None
        note.transcription_status = TranscriptionStatus.UPLOADED
        db.commit()

        queued = await task_job_service.enqueue_transcription(arq_pool, db, user_id, note.id)
        if not queued.success:
            note.transcription_status = TranscriptionStatus.FAILED
            note.transcription_error = CommonMessage.TRANSCRIPTION_QUEUE_FAILED
            db.commit()
            return ResponseCommon.error_response(
                message=CommonMessage.TRANSCRIPTION_QUEUE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        db.refresh(note)
        data = note_to_dict(note)
        data["job_id"] = queued.data["job_id"]
        return ResponseCommon.success_response(
            data=data,
            message=CommonMessage.TRANSCRIPTION_RETRY_QUEUED,
            code=status.HTTP_202_ACCEPTED,
        )


note_service = NoteService()
