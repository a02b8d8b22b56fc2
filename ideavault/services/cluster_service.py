import logging
from collections import OrderedDict
from typing import List, Optional, Sequence

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ideavault.common.common_message import CommonMessage
from ideavault.common.exceptions import EmbeddingDimensionError
from ideavault.common.response_common import ResponseCommon
from ideavault.common.utils import cluster_to_dict, note_to_dict
from ideavault.config import settings
from ideavault.models import Cluster, Note
from ideavault.schemas.cluster import ClusterCreate, ClusterUpdate
from ideavault.services import embedding_service
from ideavault.services.label_service import label_service

logger = logging.getLogger(__name__)


class ClusterService:

    # ------------------------------------------------------------------
    # Matching and assignment
    # ------------------------------------------------------------------

    def find_best_cluster(
        self,
        db: Session,
        user_id: str,
        embedding: Sequence[float],
        threshold: Optional[float] = None,
    ) -> Optional[int]:
        """
        Return the id of the user's cluster whose members are, on average,
        most similar to ``embedding``, or None when no cluster reaches
        ``threshold`` (inclusive).

        Each member is compared individually and the scores averaged; there
        is no centroid. On exact ties the first cluster in creation order
        wins. Store errors propagate to the caller.
        """
        if threshold is None:
            threshold = settings.CLUSTER_MATCH_THRESHOLD
        if not embedding:
            logger.warning("find_best_cluster called without an embedding for user %s", user_id)
            return None

        clusters = (
            db.query(Cluster)
            .filter(Cluster.user_id == user_id)
            .order_by(Cluster.created_at.asc(), Cluster.id.asc())
            .all()
        )
        if not clusters:
            return None

        members = (
            db.query(Note)
            .filter(
                Note.user_id == user_id,
                Note.cluster_id.isnot(None),
                Note.embedding.isnot(None),
            )
            .all()
        )

        grouped = OrderedDict((cluster.id, []) for cluster in clusters)
        for note in members:
            if note.cluster_id not in grouped:
                continue
            # The column type hands back None for unreadable vectors
            if note.embedding is None:
                logger.warning("Skipping note %s in cluster %s: unusable embedding", note.id, note.cluster_id)
                continue
            grouped[note.cluster_id].append(note.embedding)

        best_cluster_id = None
        best_score = None
        for cluster_id, member_embeddings in grouped.items():
            if not member_embeddings:
                continue
            total = sum(
                embedding_service.calculate_cosine_similarity(embedding, member)
                for member in member_embeddings
            )
            mean = total / len(member_embeddings)
            if mean < threshold:
                continue
            if best_score is None or mean > best_score:
                best_cluster_id = cluster_id
                best_score = mean

        if best_cluster_id is not None:
            logger.info(
                "Matched embedding to cluster %s for user %s (mean similarity %.3f)",
                best_cluster_id,
                user_id,
                best_score,
            )
        return best_cluster_id

    def get_or_create_cluster(self, db: Session, user_id: str, label: str) -> Cluster:
        """Reuse the user's cluster with exactly ``label`` or insert it."""
        existing = self._get_cluster_by_label(db, user_id, label)
        if existing:
            return existing

        cluster = Cluster(user_id=user_id, label=label)
        db.add(cluster)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request created the same label first
            db.rollback()
            existing = self._get_cluster_by_label(db, user_id, label)
            if existing is None:
                raise
            logger.info("Reusing concurrently created cluster '%s' for user %s", label, user_id)
            return existing
        db.refresh(cluster)
        logger.info("Created cluster %s '%s' for user %s", cluster.id, label, user_id)
        return cluster

    def assign_to_cluster(
        self,
        db: Session,
        user_id: str,
        note_id: int,
        embedding: Optional[Sequence[float]],
        transcript: str,
    ) -> Optional[int]:
        """
        Put the note into its best matching cluster, or into a new cluster
        named by the label generator when nothing matches.

        Returns the cluster id, or None when no assignment was possible. Never
        raises: a note without a cluster is a valid state.
        """
        try:
            embedding = embedding_service.validate_embedding(embedding)
        except EmbeddingDimensionError as exc:
            logger.warning("Cannot assign note %s to a cluster: %s", note_id, exc)
            return None

        try:
            cluster_id = self.find_best_cluster(db, user_id, embedding)
            if cluster_id is None:
                label = label_service.generate_cluster_label(transcript)
                cluster_id = self.get_or_create_cluster(db, user_id, label).id
            if not self.set_note_cluster(db, user_id, note_id, cluster_id):
                logger.warning("Note %s not found for user %s while assigning cluster", note_id, user_id)
                return None
            return cluster_id
        except Exception as exc:
            db.rollback()
            logger.error("Cluster assignment failed for note %s: %s", note_id, exc, exc_info=True)
            return None

    def set_note_cluster(self, db: Session, user_id: str, note_id: int, cluster_id: Optional[int]) -> bool:
        updated = (
            db.query(Note)
            .filter(Note.id == note_id, Note.user_id == user_id)
            .update({"cluster_id": cluster_id}, synchronize_session="fetch")
        )
        db.commit()
        return updated > 0

    def _get_cluster_by_label(self, db: Session, user_id: str, label: str) -> Optional[Cluster]:
        return db.query(Cluster).filter(Cluster.user_id == user_id, Cluster.label == label).first()

    def _get_owned_cluster(self, db: Session, user_id: str, cluster_id: int) -> Optional[Cluster]:
        return db.query(Cluster).filter(Cluster.id == cluster_id, Cluster.user_id == user_id).first()

    def _member_ids(self, db: Session, user_id: str, cluster_ids: List[int]) -> dict:
        members = {cluster_id: [] for cluster_id in cluster_ids}
        if not cluster_ids:
            return members
        rows = (
            db.query(Note.id, Note.cluster_id)
            .filter(Note.user_id == user_id, Note.cluster_id.in_(cluster_ids))
            .order_by(Note.created_at.desc())
            .all()
        )
        for note_id, cluster_id in rows:
            members[cluster_id].append(note_id)
        return members

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_cluster(self, db: Session, user_id: str, cluster_data: ClusterCreate) -> ResponseCommon:
        """Create a cluster explicitly. Duplicate labels are rejected."""
        label = cluster_data.label.strip()
        if not label:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )
        if self._get_cluster_by_label(db, user_id, label):
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_EXISTS,
                code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            cluster = Cluster(user_id=user_id, label=label)
            db.add(cluster)
            db.commit()
            db.refresh(cluster)
        except IntegrityError:
            db.rollback()
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_EXISTS,
                code=status.HTTP_400_BAD_REQUEST,
            )

        return ResponseCommon.success_response(
            data=cluster_to_dict(cluster, []),
            message=CommonMessage.CLUSTER_CREATED_SUCCESS,
            code=status.HTTP_201_CREATED,
        )

    def list_clusters(self, db: Session, user_id: str) -> ResponseCommon:
        """List all clusters for a user, newest first, with member note ids"""
        clusters = (
            db.query(Cluster)
            .filter(Cluster.user_id == user_id)
            .order_by(Cluster.created_at.desc(), Cluster.id.desc())
            .all()
        )
        members = self._member_ids(db, user_id, [cluster.id for cluster in clusters])
        return ResponseCommon.success_response(
            data=[cluster_to_dict(cluster, members[cluster.id]) for cluster in clusters]
        )

    def get_cluster(self, db: Session, user_id: str, cluster_id: int) -> ResponseCommon:
        cluster = self._get_owned_cluster(db, user_id, cluster_id)
        if not cluster:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        members = self._member_ids(db, user_id, [cluster.id])
        return ResponseCommon.success_response(data=cluster_to_dict(cluster, members[cluster.id]))

    def rename_cluster(
        self, db: Session, user_id: str, cluster_id: int, cluster_data: ClusterUpdate
    ) -> ResponseCommon:
        cluster = self._get_owned_cluster(db, user_id, cluster_id)
        if not cluster:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        label = cluster_data.label.strip()
        if not label:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_REQUIRED,
                code=status.HTTP_400_BAD_REQUEST,
            )
        clash = self._get_cluster_by_label(db, user_id, label)
        if clash and clash.id != cluster.id:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_EXISTS,
                code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            cluster.label = label
            db.commit()
            db.refresh(cluster)
        except IntegrityError:
            db.rollback()
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_LABEL_EXISTS,
                code=status.HTTP_400_BAD_REQUEST,
            )

        members = self._member_ids(db, user_id, [cluster.id])
        return ResponseCommon.success_response(
            data=cluster_to_dict(cluster, members[cluster.id]),
            message=CommonMessage.CLUSTER_UPDATED_SUCCESS,
        )

    def delete_cluster(self, db: Session, user_id: str, cluster_id: int) -> ResponseCommon:
        """Delete a cluster. Member notes survive and become unclustered."""
        cluster = self._get_owned_cluster(db, user_id, cluster_id)
        if not cluster:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        try:
            db.query(Note).filter(
                Note.cluster_id == cluster_id,
                Note.user_id == user_id,
            ).update({"cluster_id": None}, synchronize_session="fetch")
            db.delete(cluster)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error("Error deleting cluster %s: %s", cluster_id, e, exc_info=True)
            return ResponseCommon.error_response(
                message=str(e),
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return ResponseCommon.success_response(message=CommonMessage.CLUSTER_DELETED_SUCCESS)

    def assign_note_to_cluster(self, db: Session, user_id: str, cluster_id: int, note_id: int) -> ResponseCommon:
        """Manual assignment. Bypasses the matcher."""
        cluster = self._get_owned_cluster(db, user_id, cluster_id)
        if not cluster:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )

        note.cluster_id = cluster.id
        db.commit()
        db.refresh(note)
        return ResponseCommon.success_response(
            data=note_to_dict(note),
            message=CommonMessage.CLUSTER_ASSIGNED_SUCCESS,
        )

    def get_cluster_notes(self, db: Session, user_id: str, cluster_id: int) -> ResponseCommon:
        cluster = self._get_owned_cluster(db, user_id, cluster_id)
        if not cluster:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        notes = (
            db.query(Note)
            .filter(Note.cluster_id == cluster.id, Note.user_id == user_id)
            .order_by(Note.created_at.desc())
            .all()
        )
        return ResponseCommon.success_response(data=[note_to_dict(note) for note in notes])

    def auto_cluster_note(self, db: Session, user_id: str, note_id: int) -> ResponseCommon:
        """Run the full assigner for one note, creating a cluster if needed."""
        note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
        if not note:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_FOUND,
                code=status.HTTP_404_NOT_FOUND,
            )
        if note.cluster_id is not None:
            return ResponseCommon.success_response(
                data=note_to_dict(note),
                message=CommonMessage.CLUSTER_ASSIGNED_SUCCESS,
            )
        if note.embedding is None:
            return ResponseCommon.error_response(
                message=CommonMessage.NOTE_NOT_EMBEDDED,
                code=status.HTTP_400_BAD_REQUEST,
            )

        cluster_id = self.assign_to_cluster(db, user_id, note.id, note.embedding, note.transcript)
        if cluster_id is None:
            return ResponseCommon.error_response(
                message=CommonMessage.CLUSTER_ASSIGN_FAILED,
                code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        db.refresh(note)
        return ResponseCommon.success_response(
            data=note_to_dict(note),
            message=CommonMessage.CLUSTER_ASSIGNED_SUCCESS,
        )


cluster_service = ClusterService()
