from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ideavault.api.deps import get_current_user, get_db
from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema
from ideavault.schemas.task_job import TaskJobResponse
from ideavault.services.task_job_service import task_job_service

router = APIRouter()


@router.get("/status/{job_id}", response_model=ResponseCommonSchema[TaskJobResponse])
def get_task_status(
    job_id: str,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """
    Get the status of an async task job.
    """
    result = task_job_service.get_job_status(
        db=db,
        job_id=job_id,
        user_id=current_user,
    )
    return result.to_response()
