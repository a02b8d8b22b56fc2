from ideavault.models.base_import import (
    Base,
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    datetime,
    relationship,
    timezone,
)


class Cluster(Base):
    __tablename__ = "clusters"
    __table_args__ = (
        UniqueConstraint("user_id", "label", name="uq_clusters_user_id_label"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    label = Column(String(255), nullable=False)

    # Metadata
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Members are derived from notes.cluster_id
    notes = relationship("Note", back_populates="cluster", passive_deletes=True)

    def __repr__(self):
        return f"<Cluster(id={self.id}, label='{self.label}', user_id='{self.user_id}')>"
