from ideavault.config import settings
from ideavault.models.base_import import (
    Base,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    datetime,
    relationship,
    timezone,
)
from ideavault.models.embedding_type import EmbeddingType


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    cluster_id = Column(Integer, ForeignKey("clusters.id", ondelete="SET NULL"), nullable=True, index=True)

    # Content
    transcript = Column(Text, nullable=False, default="")  # empty while audio is transcribing
    embedding = Column(EmbeddingType(settings.EMBEDDING_DIMENSION), nullable=True)
    is_favorite = Column(Boolean, default=False, nullable=False)

    # Audio-related fields
    audio_url = Column(String, nullable=True)
    audio_path = Column(String, nullable=True)
    audio_content_type = Column(String(100), nullable=True)
    duration = Column(Float, nullable=True)  # in seconds

    # Pipeline state: uploaded, transcribing, transcribed, clustered, failed
    transcription_status = Column(String(20), nullable=True, index=True)
    transcription_error = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    cluster = relationship("Cluster", back_populates="notes")
    task_jobs = relationship("TaskJob", back_populates="note", passive_deletes=True)

    def __repr__(self):
        return f"<Note(id={self.id}, user_id='{self.user_id}', cluster_id={self.cluster_id})>"
