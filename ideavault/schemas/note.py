from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class NoteBase(BaseModel):
    transcript: str = ""
    is_favorite: bool = False
    cluster_id: Optional[int] = None


class NoteCreate(BaseModel):
    transcript: str = Field(..., description="Text of the note")


class NoteUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    transcript: Optional[str] = None
    cluster_id: Optional[int] = Field(None, description="Cluster ID (null to unassign)")
    is_favorite: Optional[bool] = None


class Note(NoteBase):
    id: int
    user_id: str
    audio_url: Optional[str] = None
    audio_content_type: Optional[str] = None
    duration: Optional[float] = None
    has_embedding: bool = False
    transcription_status: Optional[str] = None
    transcription_error: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NoteCreateResult(Note):
    """Note as returned from creation, with the matcher's outcome"""
    suggested_cluster_label: Optional[str] = None
    job_id: Optional[str] = None


class NoteList(BaseModel):
    notes: List[Note] = Field(default_factory=list)
    total: int = 0
