import logging

from sqlalchemy.orm import Session

from ideavault.config import settings
from ideavault.core.redis_config import REDIS_SETTINGS
from ideavault.db.session import SessionLocal
from ideavault.services.transcription_pipeline import run_transcription_pipeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("arq.worker")


async def handle_transcription(
    ctx,
    job_id: str,
    user_id: str,
    note_id: int,
):
    """
    Background task: transcribe, embed and cluster one audio note.
    """
    db: Session = SessionLocal()
    try:
        logger.info("Starting transcription for job: %s, note_id: %s", job_id, note_id)
        result = run_transcription_pipeline(db, note_id=note_id, user_id=user_id, job_id=job_id)
        logger.info("Finished transcription for job: %s with status %s", job_id, result.get("status"))
        return result
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker configuration."""

    functions = [
        handle_transcription,
    ]
    redis_settings = REDIS_SETTINGS
    max_jobs = 10
    # Must outlast the speech-to-text ceiling plus embedding and clustering
    job_timeout = int(settings.TRANSCRIPTION_TIMEOUT_SECONDS) + 300
    keep_result = 3600
    max_tries = 3
