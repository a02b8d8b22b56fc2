from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ClusterBase(BaseModel):
    label: str = Field(..., min_length=1, max_length=255, description="Cluster label, unique per user")


class ClusterCreate(ClusterBase):
    """Schema for creating a cluster explicitly"""
    pass


class ClusterUpdate(BaseModel):
    """Schema for renaming a cluster"""
    label: str = Field(..., min_length=1, max_length=255)


class Cluster(ClusterBase):
    """Schema for cluster response"""
    id: int
    user_id: str
    note_ids: List[int] = Field(default_factory=list, description="Derived from notes.cluster_id")
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignNoteToCluster(BaseModel):
    note_id: int
