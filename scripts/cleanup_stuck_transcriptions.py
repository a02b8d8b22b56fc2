from datetime import datetime, timedelta, timezone

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import JobStatus, TranscriptionStatus
from ideavault.config import settings
from ideavault.db.session import SessionLocal
from ideavault.models import Note, TaskJob


def cleanup_stuck_transcriptions(db, now=None) -> int:
    """Fail audio notes that have been pending longer than the configured limit."""
    now = now or datetime.now(timezone.utc)
    timeout = now - timedelta(minutes=settings.TRANSCRIPTION_STUCK_AFTER_MINUTES)

    stuck_notes = (
        db.query(Note)
        .filter(
            Note.transcription_status.in_(TranscriptionStatus.PENDING_STATES),
            Note.updated_at < timeout,
        )
        .all()
    )

    for note in stuck_notes:
        note.transcript = ""
        note.embedding = None
        note.transcription_status = TranscriptionStatus.FAILED
        note.transcription_error = CommonMessage.TRANSCRIPTION_STUCK
        db.query(TaskJob).filter(
            TaskJob.note_id == note.id,
            TaskJob.status.in_(JobStatus.ACTIVE_STATES),
        ).update(
            {"status": JobStatus.FAILED, "error_message": CommonMessage.TRANSCRIPTION_STUCK},
            synchronize_session=False,
        )

    db.commit()
    return len(stuck_notes)


def main() -> None:
    db = SessionLocal()
    try:
        count = cleanup_stuck_transcriptions(db)
        print(f"Marked {count} stuck transcriptions as failed")
    finally:
        db.close()


if __name__ == "__main__":
    main()
