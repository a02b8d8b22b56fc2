from sqlalchemy import JSON

from ideavault.common.constants import JobStatus
from ideavault.models.base_import import (
    Base,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    datetime,
    relationship,
    timezone,
)


class TaskJob(Base):
    """One queued unit of background work, e.g. transcribing an audio note."""

    __tablename__ = "task_jobs"

    id = Column(String, primary_key=True, index=True)  # also the arq job id
    task_type = Column(String, nullable=False, index=True)
    status = Column(String, default=JobStatus.PENDING, nullable=False, index=True)
    # JSON text, e.g. {"note_id": 3, "cluster_id": 7}
    result = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    user_id = Column(String, nullable=False, index=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    note = relationship("Note", back_populates="task_jobs")
