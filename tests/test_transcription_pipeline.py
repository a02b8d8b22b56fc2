import json
from datetime import datetime, timedelta, timezone

import pytest

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import TranscriptionStatus
from ideavault.common.exceptions import TranscriptionError
from ideavault.config import settings
from ideavault.models import Cluster, Note, TaskJob
from ideavault.services import embedding_service
from ideavault.services.cluster_service import cluster_service
from ideavault.services.transcript_service import transcript_service
from ideavault.services.transcription_pipeline import run_transcription_pipeline
from scripts.cleanup_stuck_transcriptions import cleanup_stuck_transcriptions

USER = "user-1"


@pytest.fixture
def audio_note(db_session, tmp_path):
    audio_path = tmp_path / "memo.wav"
    audio_path.write_bytes(b"RIFF....WAVE")
    note = Note(
        user_id=USER,
        transcript="",
        audio_path=str(audio_path),
        audio_content_type="audio/wav",
        duration=4.2,
        transcription_status=TranscriptionStatus.UPLOADED,
    )
    db_session.add(note)
    db_session.commit()
    db_session.refresh(note)
    return note


@pytest.fixture
def speech(monkeypatch):
    calls = []

    def _set(result):
        def _transcribe(file_path, duration=None, language_code=None):
            calls.append(file_path)
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(transcript_service, "transcribe", _transcribe)
        return calls

    return _set


def reload(db_session, note_id):
    db_session.expire_all()
    return db_session.query(Note).filter(Note.id == note_id).one()


class TestPipelineSuccess:

    def test_transcribes_and_embeds(self, db_session, audio_note, speech):
        speech("  remember to buy milk  ")

        result = run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert result["status"] == TranscriptionStatus.TRANSCRIBED
        assert note.transcript == "remember to buy milk"
        assert len(note.embedding) == settings.EMBEDDING_DIMENSION
        assert note.transcription_error is None
        assert note.transcription_status == TranscriptionStatus.TRANSCRIBED

    def test_matches_existing_cluster(self, db_session, audio_note, speech, make_cluster, make_note):
        groceries = make_cluster(USER, "Groceries")
        make_note(USER, "buy bread", cluster=groceries)
        speech("grocery shopping")

        result = run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert result["cluster_id"] == groceries.id
        assert note.cluster_id == groceries.id
        assert note.transcription_status == TranscriptionStatus.CLUSTERED

    def test_match_only_by_default(self, db_session, audio_note, speech, labeler):
        speech("buy milk")

        run_transcription_pipeline(db_session, audio_note.id, USER)

        assert reload(db_session, audio_note.id).cluster_id is None
        assert db_session.query(Cluster).count() == 0
        assert labeler.calls == []

    def test_auto_create_clusters_when_enabled(self, db_session, audio_note, speech, monkeypatch):
        monkeypatch.setattr(settings, "TRANSCRIPTION_AUTO_CREATE_CLUSTERS", True)
        speech("buy milk")

        result = run_transcription_pipeline(db_session, audio_note.id, USER)

        cluster = db_session.query(Cluster).one()
        assert cluster.label == "Shopping List"
        assert result["cluster_id"] == cluster.id

    def test_updates_job_record(self, db_session, audio_note, speech):
        job = TaskJob(id="job-1", task_type="transcription", status="queued", user_id=USER, note_id=audio_note.id)
        db_session.add(job)
        db_session.commit()
        speech("buy milk")

        run_transcription_pipeline(db_session, audio_note.id, USER, job_id="job-1")

        db_session.expire_all()
        job = db_session.query(TaskJob).filter(TaskJob.id == "job-1").one()
        assert job.status == "completed"
        assert json.loads(job.result)["note_id"] == audio_note.id


class TestPipelineFailure:

    def test_speech_error_is_persisted(self, db_session, audio_note, speech):
        speech(TranscriptionError(CommonMessage.TRANSCRIPTION_TIMEOUT))

        result = run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert result["status"] == TranscriptionStatus.FAILED
        assert note.transcript == ""
        assert note.embedding is None
        assert note.transcription_error == CommonMessage.TRANSCRIPTION_TIMEOUT
        assert note.transcription_status == TranscriptionStatus.FAILED

    def test_empty_transcript_fails(self, db_session, audio_note, speech):
        speech("   ")

        run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert note.transcription_error == CommonMessage.TRANSCRIPTION_EMPTY
        assert note.embedding is None

    def test_embedding_failure_never_leaves_partial_note(self, db_session, audio_note, speech, monkeypatch):
        speech("buy milk")
        monkeypatch.setattr(embedding_service, "generate_embedding", lambda text, task_type=None: None)

        run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert note.transcript == ""
        assert note.embedding is None
        assert note.transcription_error == CommonMessage.EMBEDDING_FAILED

    def test_wrong_dimension_embedding_fails(self, db_session, audio_note, speech, monkeypatch):
        speech("buy milk")
        monkeypatch.setattr(embedding_service, "generate_embedding", lambda text, task_type=None: [0.1, 0.2])

        run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert note.transcription_status == TranscriptionStatus.FAILED
        assert note.embedding is None
        assert "768" in note.transcription_error

    def test_clustering_failure_keeps_transcript(self, db_session, audio_note, speech, make_cluster, monkeypatch):
        make_cluster(USER, "Groceries")
        speech("buy milk")

        def _broken(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(cluster_service, "find_best_cluster", _broken)

        result = run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert result["cluster_id"] is None
        assert note.transcript == "buy milk"
        assert note.embedding is not None
        assert note.transcription_error is None
        assert note.transcription_status == TranscriptionStatus.TRANSCRIBED

    def test_unknown_note(self, db_session, speech):
        calls = speech("buy milk")

        result = run_transcription_pipeline(db_session, 424242, USER)

        assert result["error"] == CommonMessage.NOTE_NOT_FOUND
        assert calls == []

    def test_other_users_note_is_not_processed(self, db_session, audio_note, speech):
        calls = speech("buy milk")

        run_transcription_pipeline(db_session, audio_note.id, "user-2")

        assert calls == []
        assert reload(db_session, audio_note.id).transcription_status == TranscriptionStatus.UPLOADED


class TestPipelineIdempotence:

    def test_second_run_skips_transcription(self, db_session, audio_note, speech):
        calls = speech("buy milk")

        run_transcription_pipeline(db_session, audio_note.id, USER)
        first = reload(db_session, audio_note.id).embedding
        run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert len(calls) == 1
        assert note.transcript == "buy milk"
        assert note.embedding == first

    def test_rerun_attempts_clustering_again(self, db_session, audio_note, speech, make_cluster, make_note):
        speech("buy milk")
        run_transcription_pipeline(db_session, audio_note.id, USER)

        groceries = make_cluster(USER, "Groceries")
        make_note(USER, "grocery store", cluster=groceries)
        run_transcription_pipeline(db_session, audio_note.id, USER)

        assert reload(db_session, audio_note.id).cluster_id == groceries.id

    def test_retry_after_failure_succeeds(self, db_session, audio_note, speech):
        speech(TranscriptionError("Speech-to-text failed: 503"))
        run_transcription_pipeline(db_session, audio_note.id, USER)

        speech("buy milk")
        run_transcription_pipeline(db_session, audio_note.id, USER)

        note = reload(db_session, audio_note.id)
        assert note.transcript == "buy milk"
        assert note.transcription_error is None


class TestCleanupStuckTranscriptions:

    def test_marks_old_pending_notes_failed(self, db_session, audio_note):
        later = datetime.now(timezone.utc) + timedelta(minutes=settings.TRANSCRIPTION_STUCK_AFTER_MINUTES + 5)

        assert cleanup_stuck_transcriptions(db_session, now=later) == 1

        note = reload(db_session, audio_note.id)
        assert note.transcription_status == TranscriptionStatus.FAILED
        assert note.transcription_error == CommonMessage.TRANSCRIPTION_STUCK
        assert note.transcript == ""

    def test_leaves_recent_notes_alone(self, db_session, audio_note):
        assert cleanup_stuck_transcriptions(db_session) == 0
        assert reload(db_session, audio_note.id).transcription_status == TranscriptionStatus.UPLOADED
