from datetime import datetime, timezone

from ideavault.common.constants import AIPrompts


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_label_user_prompt(sample: str) -> str:
    return AIPrompts.CLUSTER_LABEL_USER_PROMPT.format(sample=sample)


def build_rag_user_prompt(context: str, question: str) -> str:
    return AIPrompts.RAG_USER_PROMPT.format(context=context, question=question)


def note_to_dict(note) -> dict:
    return {
        "id": note.id,
        "user_id": note.user_id,
        "transcript": note.transcript or "",
        "cluster_id": note.cluster_id,
        "is_favorite": bool(note.is_favorite),
        "audio_url": note.audio_url,
        "audio_content_type": note.audio_content_type,
        "duration": note.duration,
        "has_embedding": note.embedding is not None,
        "transcription_status": note.transcription_status,
        "transcription_error": note.transcription_error,
        "created_at": note.created_at,
        "updated_at": note.updated_at,
    }


def cluster_to_dict(cluster, note_ids) -> dict:
    return {
        "id": cluster.id,
        "user_id": cluster.user_id,
        "label": cluster.label,
        "note_ids": list(note_ids),
        "created_at": cluster.created_at,
        "updated_at": cluster.updated_at,
    }
