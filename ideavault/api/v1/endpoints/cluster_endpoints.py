from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ideavault.api.deps import get_current_user, get_db
from ideavault.schemas.cluster import AssignNoteToCluster, Cluster, ClusterCreate, ClusterUpdate
from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema
from ideavault.services.cluster_service import cluster_service

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_cluster(
    cluster_data: ClusterCreate,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """
    Create a cluster explicitly.

    - **label**: unique per user (exact match)
    """
    response = cluster_service.create_cluster(db=db, user_id=current_user, cluster_data=cluster_data)
    return response.to_response()


@router.get("/", response_model=ResponseCommonSchema[List[Cluster]])
def list_clusters(
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """List clusters with the ids of their member notes."""
    response = cluster_service.list_clusters(db=db, user_id=current_user)
    return response.to_response()


@router.post("/{cluster_id}/assign")
def assign_note_to_cluster(
    cluster_id: int,
    payload: AssignNoteToCluster,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = cluster_service.assign_note_to_cluster(
        db=db, user_id=current_user, cluster_id=cluster_id, note_id=payload.note_id
    )
    return response.to_response()


@router.get("/{cluster_id}/notes")
def get_cluster_notes(
    cluster_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = cluster_service.get_cluster_notes(db=db, user_id=current_user, cluster_id=cluster_id)
    return response.to_response()


@router.get("/{cluster_id}", response_model=ResponseCommonSchema[Cluster])
def get_cluster(
    cluster_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = cluster_service.get_cluster(db=db, user_id=current_user, cluster_id=cluster_id)
    return response.to_response()


@router.put("/{cluster_id}")
def rename_cluster(
    cluster_id: int,
    cluster_data: ClusterUpdate,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = cluster_service.rename_cluster(
        db=db, user_id=current_user, cluster_id=cluster_id, cluster_data=cluster_data
    )
    return response.to_response()


@router.delete("/{cluster_id}")
def delete_cluster(
    cluster_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """Delete a cluster. Its notes are kept and become unclustered."""
    response = cluster_service.delete_cluster(db=db, user_id=current_user, cluster_id=cluster_id)
    return response.to_response()
