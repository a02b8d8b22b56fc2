from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ideavault.api.deps import get_arq_pool, get_current_user, get_db
from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema
from ideavault.schemas.note import Note, NoteCreate, NoteCreateResult, NoteList, NoteUpdate
from ideavault.services.cluster_service import cluster_service
from ideavault.services.note_service import note_service

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ResponseCommonSchema[NoteCreateResult])
def create_note(
    note_data: NoteCreate,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """
    Create a text note.

    The note is embedded immediately. If it fits an existing cluster it is
    assigned; otherwise `suggested_cluster_label` carries a proposed name.
    """
    response = note_service.create_note_from_text(db=db, user_id=current_user, transcript=note_data.transcript)
    return response.to_response()


@router.post("/audio", status_code=status.HTTP_201_CREATED, response_model=ResponseCommonSchema[NoteCreateResult])
async def create_audio_note(
    file: UploadFile = File(...),
    duration: Optional[float] = Form(None),
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
    arq_pool=Depends(get_arq_pool),
):
    """
    Upload a recording. Returns the placeholder note right away; the
    transcript, embedding and cluster are filled in by the worker.
    """
    audio_bytes = await file.read()
    response = await note_service.create_note_from_audio(
        db=db,
        arq_pool=arq_pool,
        user_id=current_user,
        audio_bytes=audio_bytes,
        content_type=file.content_type,
        duration=duration,
    )
    return response.to_response()


@router.get("/", response_model=ResponseCommonSchema[NoteList])
def list_notes(
    cluster_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = note_service.list_notes(db=db, user_id=current_user, cluster_id=cluster_id, skip=skip, limit=limit)
    return response.to_response()


@router.get("/{note_id}", response_model=ResponseCommonSchema[Note])
def get_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = note_service.get_note(db=db, user_id=current_user, note_id=note_id)
    return response.to_response()


@router.put("/{note_id}", response_model=ResponseCommonSchema[Note])
def update_note(
    note_id: int,
    note_data: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """
    Update a note. Send only the fields to change.

    - **transcript**: re-embeds the note
    - **cluster_id**: moves the note; `null` removes it from its cluster
    - **is_favorite**: sets the favorite flag
    """
    response = note_service.update_note(db=db, user_id=current_user, note_id=note_id, note_data=note_data)
    return response.to_response()


@router.put("/{note_id}/favorite")
def toggle_favorite(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = note_service.toggle_favorite(db=db, user_id=current_user, note_id=note_id)
    return response.to_response()


@router.delete("/{note_id}")
def delete_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    response = note_service.delete_note(db=db, user_id=current_user, note_id=note_id)
    return response.to_response()


@router.post("/{note_id}/retry-transcription", status_code=status.HTTP_202_ACCEPTED)
async def retry_transcription(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
    arq_pool=Depends(get_arq_pool),
):
    """Re-queue transcription for a note whose transcription failed."""
    response = await note_service.retry_transcription(
        db=db, arq_pool=arq_pool, user_id=current_user, note_id=note_id
    )
    return response.to_response()


@router.post("/{note_id}/auto-cluster")
def auto_cluster_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """Assign the note to its best cluster, creating one if nothing fits."""
    response = cluster_service.auto_cluster_note(db=db, user_id=current_user, note_id=note_id)
    return response.to_response()
