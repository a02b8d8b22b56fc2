import json
import logging
import uuid
from typing import Optional

from fastapi import status
from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import JobStatus, TaskTypes
from ideavault.common.response_common import ResponseCommon
from ideavault.models.task_job_model import TaskJob

logger = logging.getLogger(__name__)


class TaskJobService:
    """Records background jobs in task_jobs and hands them to the arq worker."""

    async def create_and_queue_job(
        self,
        arq_pool,
        db: Session,
        task_type: str,
        task_function: str,
        user_id: str,
        note_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        **kwargs,
    ) -> ResponseCommon:
        """
        Insert the job row, then enqueue ``task_function`` under the same id.

        The row is committed before the job reaches Redis. If Redis rejects
        the job the row is marked failed.
        """
        if arq_pool is None:
            logger.error("Cannot queue %s job: arq pool is not initialized", task_type)
            return ResponseCommon.error_response(
                message=CommonMessage.JOB_POOL_UNAVAILABLE,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        job_id = str(uuid.uuid4())
        job = TaskJob(
            id=job_id,
            task_type=task_type,
            status=JobStatus.PENDING,
            user_id=user_id,
            note_id=note_id,
            metadata_json=metadata,
        )
        try:
            db.add(job)
            db.commit()
            db.refresh(job)
        except Exception as exc:
            db.rollback()
            logger.error("Could not record %s job for user %s: %s", task_type, user_id, exc, exc_info=True)
            return ResponseCommon.error_response(
                message=CommonMessage.JOB_CREATE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        job_kwargs = dict(kwargs, user_id=user_id)
        if note_id is not None:
            job_kwargs["note_id"] = note_id

        try:
            await arq_pool.enqueue_job(task_function, job_id, _job_id=job_id, **job_kwargs)
        except Exception as exc:
            logger.error("Failed to enqueue %s job %s: %s", task_type, job_id, exc, exc_info=True)
            db.rollback()
            job.status = JobStatus.FAILED
            job.error_message = str(exc)
            db.commit()
            return ResponseCommon.error_response(
                message=CommonMessage.TRANSCRIPTION_QUEUE_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        job.status = JobStatus.QUEUED
        db.commit()
        logger.info("Queued %s job %s for note %s", task_type, job_id, note_id)

        return ResponseCommon.success_response(
            data={"job_id": job_id, "task_type": task_type, "status": JobStatus.QUEUED},
            message=CommonMessage.JOB_QUEUED,
        )

    async def enqueue_transcription(self, arq_pool, db: Session, user_id: str, note_id: int) -> ResponseCommon:
        return await self.create_and_queue_job(
            arq_pool=arq_pool,
            db=db,
            task_type=TaskTypes.TRANSCRIPTION,
            task_function="handle_transcription",
            user_id=user_id,
            note_id=note_id,
        )

    def get_job_status(self, db: Session, job_id: str, user_id: str) -> ResponseCommon:
        job = db.query(TaskJob).filter(TaskJob.id == job_id, TaskJob.user_id == user_id).first()
        if not job:
            return ResponseCommon.error_response(
                message=CommonMessage.JOB_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        result = None
        if job.result:
            try:
                result = json.loads(job.result)
            except (json.JSONDecodeError, TypeError):
                result = job.result

        return ResponseCommon.success_response(
            data={
                "job_id": job.id,
                "task_type": job.task_type,
                "status": job.status,
                "result": result,
                "error_message": job.error_message,
                "note_id": job.note_id,
                "created_at": job.created_at,
                "updated_at": job.updated_at,
            },
            message=CommonMessage.JOB_STATUS_RETRIEVED,
        )


task_job_service = TaskJobService()
