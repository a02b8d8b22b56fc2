from pydantic import BaseModel
from typing import Optional, Any
from datetime import datetime


class TaskJobResponse(BaseModel):
    """Individual task job response"""
    job_id: str
    task_type: str
    status: str
    result: Optional[Any] = None
    error_message: Optional[str] = None
    note_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
