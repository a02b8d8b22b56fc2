from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from ideavault.common.common_message import CommonMessage
from ideavault.common.constants import AIPrompts
from ideavault.services import embedding_service
from ideavault.services.chat_service import chat_service
from ideavault.services.search_service import search_service

USER = "user-1"


class TestDetectTemporalFilter:

    def test_today(self, fixed_now):
        start, end = search_service.detect_temporal_filter("What did I say TODAY?", now=fixed_now)
        assert start == datetime(2026, 3, 18, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 19, tzinfo=timezone.utc)

    def test_yesterday(self, fixed_now):
        start, end = search_service.detect_temporal_filter("notes from yesterday", now=fixed_now)
        assert start == datetime(2026, 3, 17, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 18, tzinfo=timezone.utc)

    @pytest.mark.parametrize("query", ["ideas from last week", "the past week"])
    def test_last_week(self, fixed_now, query):
        start, end = search_service.detect_temporal_filter(query, now=fixed_now)
        assert start == datetime(2026, 3, 11, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 19, tzinfo=timezone.utc)

    def test_this_week_starts_monday(self, fixed_now):
        start, end = search_service.detect_temporal_filter("this week", now=fixed_now)
        assert start == datetime(2026, 3, 16, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 19, tzinfo=timezone.utc)

    def test_no_time_words(self, fixed_now):
        assert search_service.detect_temporal_filter("grocery shopping", now=fixed_now) is None


class TestSearch:

    def test_empty_query_rejected(self, db_session):
        response = search_service.search(db_session, USER, "   ")
        assert response.code == 400
        assert response.message == CommonMessage.QUERY_REQUIRED

    def test_no_notes_falls_back_to_generated_answer(self, db_session, generator):
        response = search_service.search(db_session, USER, "grocery shopping")

        assert response.success
        assert response.data["results"] == []
        assert response.data["ai_answer"] == generator.answer
        assert response.data["is_fallback"] is True
        assert AIPrompts.RAG_EMPTY_CONTEXT in generator.prompts[0]

    def test_finds_semantically_related_note(self, db_session, make_note, generator):
        note = make_note(USER, "buy milk")
        make_note(USER, "gym workout")

        response = search_service.search(db_session, USER, "grocery shopping")

        results = response.data["results"]
        assert [r["note"]["id"] for r in results] == [note.id]
        assert results[0]["similarity"] >= 0.5
        assert response.data["ai_answer"] is None
        assert response.data["is_fallback"] is False
        assert generator.prompts == []

    def test_weak_top_score_adds_answer(self, db_session, make_note, generator, monkeypatch):
        make_note(USER, "buy milk")
        monkeypatch.setattr(embedding_service, "calculate_cosine_similarity", lambda a, b: 0.4)

        response = search_service.search(db_session, USER, "grocery shopping")

        assert len(response.data["results"]) == 1
        assert response.data["ai_answer"] == generator.answer
        assert response.data["is_fallback"] is False
        assert "buy milk" in generator.prompts[0]

    def test_results_below_floor_are_dropped(self, db_session, make_note, generator):
        make_note(USER, "gym workout")

        response = search_service.search(db_session, USER, "grocery shopping")

        assert response.data["results"] == []
        assert response.data["is_fallback"] is True

    def test_limits_and_orders_results(self, db_session, make_note):
        for i in range(7):
            make_note(USER, "buy milk " + "bread " * i)

        results = search_service.search(db_session, USER, "grocery shopping").data["results"]

        scores = [r["similarity"] for r in results]
        assert len(results) == 5
        assert scores == sorted(scores, reverse=True)

    def test_only_searches_own_notes(self, db_session, make_note):
        make_note("user-2", "buy milk")

        response = search_service.search(db_session, USER, "grocery shopping")
        assert response.data["results"] == []

    def test_related_notes_exclude_self(self, db_session, make_note):
        milk = make_note(USER, "buy milk")
        bread = make_note(USER, "buy bread")
        make_note(USER, "gym workout")
        make_note(USER, "flight to the beach")

        results = search_service.search(db_session, USER, "buy milk").data["results"]

        first = next(r for r in results if r["note"]["id"] == milk.id)
        related_ids = [r["note"]["id"] for r in first["related_notes"]]
        assert milk.id not in related_ids
        assert related_ids[0] == bread.id
        assert len(related_ids) == 3

    def test_embedding_failure_is_bad_gateway(self, db_session, make_note, monkeypatch):
        make_note(USER, "buy milk")
        monkeypatch.setattr(embedding_service, "generate_embedding", lambda text, task_type=None: None)

        response = search_service.search(db_session, USER, "grocery shopping")
        assert response.code == 502

    def test_wrong_length_query_vector_is_bad_gateway(self, db_session, make_note, generator, monkeypatch):
        make_note(USER, "buy milk")
        monkeypatch.setattr(embedding_service, "generate_embedding", lambda text, task_type=None: [1.0, 0.0, 0.0])

        response = search_service.search(db_session, USER, "grocery shopping")

        assert response.code == 502
        assert response.message == CommonMessage.EMBEDDING_INVALID
        assert generator.prompts == []


class TestTemporalSearch:

    def test_today_excludes_older_notes(self, db_session, make_note, fixed_now):
        today_note = make_note(USER, "gym workout", created_at=fixed_now - timedelta(hours=2))
        old_note = make_note(USER, "gym workout", created_at=fixed_now - timedelta(days=10))

        response = search_service.search(db_session, USER, "what did I do today", now=fixed_now)

        ids = [r["note"]["id"] for r in response.data["results"]]
        assert today_note.id in ids
        assert old_note.id not in ids

    def test_no_similarity_floor_for_date_matches(self, db_session, make_note, fixed_now):
        note = make_note(USER, "flight to the beach", created_at=fixed_now - timedelta(hours=1))

        response = search_service.search(db_session, USER, "grocery shopping today", now=fixed_now)

        assert [r["note"]["id"] for r in response.data["results"]] == [note.id]

    def test_missing_embedding_gets_neutral_score(self, db_session, make_note, fixed_now):
        note = make_note(USER, "buy milk", created_at=fixed_now - timedelta(hours=1))
        db_session.execute(text("UPDATE notes SET embedding = 'garbage' WHERE id = :id"), {"id": note.id})
        db_session.commit()
        db_session.expire_all()

        results = search_service.search(db_session, USER, "today", now=fixed_now).data["results"]

        assert results[0]["note"]["id"] == note.id
        assert results[0]["similarity"] == 0.5
        assert results[0]["related_notes"] == []

    def test_pending_audio_notes_are_not_returned(self, db_session, make_note, fixed_now):
        make_note(USER, "", embed=False, created_at=fixed_now - timedelta(hours=1))

        response = search_service.search(db_session, USER, "today", now=fixed_now)
        assert response.data["results"] == []
        assert response.data["is_fallback"] is True

    def test_temporal_limit_is_ten(self, db_session, make_note, fixed_now):
        for i in range(12):
            make_note(USER, f"gym workout {i}", created_at=fixed_now - timedelta(minutes=i + 1))

        results = search_service.search(db_session, USER, "today", now=fixed_now).data["results"]
        assert len(results) == 10


class TestRagContext:

    def test_context_lines_are_numbered_and_dated(self, db_session, make_note, fixed_now):
        from ideavault.services.rag_service import rag_service

        first = make_note(USER, "buy milk", created_at=fixed_now)
        second = make_note(USER, "gym\nworkout", created_at=fixed_now - timedelta(days=1))

        context = rag_service.build_context([first, second])

        assert context == "1. [2026-03-18] buy milk\n\n2. [2026-03-17] gym workout"

    def test_empty_context_says_so(self):
        from ideavault.services.rag_service import rag_service

        assert rag_service.build_context([]) == AIPrompts.RAG_EMPTY_CONTEXT

    def test_generation_failure_uses_fallback_text(self, monkeypatch):
        from ideavault.services import rag_service as rag_module
        from ideavault.services.rag_service import RagService

        def _boom(timeout):
            raise RuntimeError("vertex unavailable")

        monkeypatch.setattr(rag_module, "get_genai_client", _boom)

        answer = RagService().generate_answer("what should I buy?", [])
        assert answer == CommonMessage.RAG_GENERATION_FAILED


class TestChat:

    def test_answers_from_relevant_notes(self, db_session, make_note, generator):
        make_note(USER, "buy milk")
        make_note(USER, "gym workout")

        response = chat_service.answer_question(db_session, USER, "what groceries do I need?")

        assert response.data == {"answer": generator.answer, "relevant_notes_count": 1}
        assert "buy milk" in generator.prompts[0]
        assert "gym workout" not in generator.prompts[0]

    def test_no_notes_still_answers(self, db_session, generator):
        response = chat_service.answer_question(db_session, USER, "what did I say today?")

        assert response.data["relevant_notes_count"] == 0
        assert AIPrompts.RAG_EMPTY_CONTEXT in generator.prompts[0]

    def test_blank_question_rejected(self, db_session):
        assert chat_service.answer_question(db_session, USER, " ").code == 400

    def test_wrong_length_question_vector_is_bad_gateway(self, db_session, make_note, generator, monkeypatch):
        make_note(USER, "buy milk")
        monkeypatch.setattr(embedding_service, "generate_embedding", lambda text, task_type=None: [1.0, 0.0, 0.0])

        response = chat_service.answer_question(db_session, USER, "what groceries do I need?")

        assert response.code == 502
        assert response.message == CommonMessage.EMBEDDING_INVALID
        assert generator.prompts == []
