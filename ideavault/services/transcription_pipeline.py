"""
Background pipeline that turns a stored audio artifact into a transcript,
an embedding and, when possible, a cluster assignment.

States recorded on ``notes.transcription_status``::

    uploaded -> transcribing -> transcribed -> clustered
         \\__________\\__________> failed

Transcript and embedding are written in one commit. Clustering runs after
that commit and can never undo it. Any failure before the commit is
persisted on the note as ``transcription_error`` with an empty transcript
and no embedding.
"""
import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import JobStatus, TranscriptionStatus
from ideavault.common.exceptions import TranscriptionError
from ideavault.config import settings
from ideavault.models import Note, TaskJob
from ideavault.services import embedding_service
from ideavault.services.cluster_service import cluster_service
from ideavault.services.transcript_service import transcript_service

logger = logging.getLogger(__name__)


class TranscriptionPipeline:

    def run(self, db: Session, note_id: int, user_id: str, job_id: Optional[str] = None) -> dict:
        """Process one note. Safe to call again for the same note."""
        job_record = None
        if job_id:
            job_record = db.query(TaskJob).filter(TaskJob.id == job_id).first()
            if not job_record:
                logger.warning("Job %s not found in database, continuing without it", job_id)

        note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
        if not note:
            logger.error("Note %s not found for user %s, nothing to transcribe", note_id, user_id)
            if job_record:
                job_record.status = JobStatus.FAILED
                job_record.error_message = CommonMessage.NOTE_NOT_FOUND
                db.commit()
            return {"note_id": note_id, "status": None, "error": CommonMessage.NOTE_NOT_FOUND}

        try:
            if note.transcript and note.embedding is not None:
                logger.info("Note %s already transcribed, skipping to clustering", note_id)
            else:
                self._transcribe_and_embed(db, note, job_record)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Transcription pipeline failed for note %s: %s", note_id, message)
            db.rollback()
            self._mark_failed(db, note, job_record, message)
            return {"note_id": note_id, "status": TranscriptionStatus.FAILED, "error": message}

        cluster_id = self._attempt_clustering(db, note, user_id)

        if job_record:
            job_record.status = JobStatus.COMPLETED
            job_record.result = json.dumps({"note_id": note.id, "cluster_id": cluster_id})
            db.commit()

        logger.info("Transcription pipeline completed for note %s (cluster=%s)", note_id, cluster_id)
        return {"note_id": note.id, "status": note.transcription_status, "cluster_id": cluster_id}

    def _transcribe_and_embed(self, db: Session, note: Note, job_record: Optional[TaskJob]) -> None:
        note.transcription_status = TranscriptionStatus.TRANSCRIBING
        if job_record:
            job_record.status = JobStatus.PROCESSING
        db.commit()

        transcript = transcript_service.transcribe(note.audio_path, duration=note.duration)
        if not transcript or not transcript.strip():
            raise TranscriptionError(CommonMessage.TRANSCRIPTION_EMPTY)

        embedding = embedding_service.generate_document_embedding(transcript)
        if embedding is None:
            raise TranscriptionError(CommonMessage.EMBEDDING_FAILED)
        embedding = embedding_service.validate_embedding(embedding)

        # Single commit: readers never see a transcript without its embedding
        note.transcript = transcript.strip()
        note.embedding = embedding
        note.transcription_error = None
        note.transcription_status = TranscriptionStatus.TRANSCRIBED
        db.commit()
        db.refresh(note)

    def _mark_failed(self, db: Session, note: Note, job_record: Optional[TaskJob], message: str) -> None:
        try:
            note.transcript = ""
            note.embedding = None
            note.transcription_error = message
            note.transcription_status = TranscriptionStatus.FAILED
            if job_record:
                job_record.status = JobStatus.FAILED
                job_record.error_message = message
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Could not persist failure for note %s", note.id, exc_info=True)
            raise

    def _attempt_clustering(self, db: Session, note: Note, user_id: str) -> Optional[int]:
        """Best-effort. Errors are logged and leave the note unclustered."""
        if note.cluster_id is not None:
            return note.cluster_id

        try:
            if settings.TRANSCRIPTION_AUTO_CREATE_CLUSTERS:
                cluster_id = cluster_service.assign_to_cluster(
                    db, user_id, note.id, note.embedding, note.transcript
                )
            else:
                cluster_id = cluster_service.find_best_cluster(db, user_id, note.embedding)
                if cluster_id is not None:
                    cluster_service.set_note_cluster(db, user_id, note.id, cluster_id)

            if cluster_id is None:
                return None

            db.refresh(note)
            note.transcription_status = TranscriptionStatus.CLUSTERED
            db.commit()
            return cluster_id
        except Exception as exc:
            db.rollback()
            logger.error("Clustering failed for note %s: %s", note.id, exc, exc_info=True)
            return None


transcription_pipeline = TranscriptionPipeline()


def run_transcription_pipeline(db: Session, note_id: int, user_id: str, job_id: Optional[str] = None) -> dict:
    return transcription_pipeline.run(db, note_id, user_id, job_id=job_id)
