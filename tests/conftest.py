"""
Pytest configuration and fixtures for IdeaVault testing
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import math
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ideavault.config import settings
from ideavault.db.base import Base
from ideavault.models import Cluster, Note
from ideavault.services import embedding_service
from ideavault.services.label_service import label_service
from ideavault.services.rag_service import rag_service
from ideavault.services.transcript_service import transcript_service

# Words mapped onto one concept so related phrasings embed close together
SYNONYM_GROUPS = {
    "groceries": {"buy", "milk", "grocery", "groceries", "shopping", "shop", "bread", "eggs", "store"},
    "fitness": {"run", "running", "gym", "workout", "exercise", "jog", "marathon"},
    "software": {"app", "feature", "code", "bug", "deploy", "api", "backend"},
    "travel": {"trip", "flight", "hotel", "vacation", "travel", "beach"},
}
STOP_WORDS = {
    "a", "an", "the", "and", "or", "to", "for", "of", "on", "in", "at", "my", "i", "me",
    "what", "did", "do", "about", "some", "with", "is", "was", "today", "yesterday",
    "week", "last", "past", "this", "note", "notes", "say", "said", "new",
}
_CANONICAL = {word: concept for concept, words in SYNONYM_GROUPS.items() for word in words}


class StubEmbedder:
    """Deterministic bag-of-concepts embeddings; no two concepts share a dimension."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self.vocabulary: Dict[str, int] = {}
        self.calls: List[str] = []

    def _index(self, token: str) -> int:
        if token not in self.vocabulary:
            self.vocabulary[token] = len(self.vocabulary) % self.dimension
        return self.vocabulary[token]

    def embed(self, text: str) -> Optional[List[float]]:
        self.calls.append(text)
        if not text or not text.strip():
            return None
        tokens = [
            _CANONICAL.get(word, word)
            for word in re.findall(r"[a-z0-9]+", text.lower())
            if word not in STOP_WORDS
        ]
        if not tokens:
            tokens = ["__blank__"]
        vector = [0.0] * self.dimension
        for token in tokens:
            vector[self._index(token)] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector]


class FakeLabeler:
    def __init__(self, label: str = "Shopping List"):
        self.label = label
        self.calls: List[str] = []

    def __call__(self, sample_text: str) -> str:
        self.calls.append(sample_text)
        return self.label


class FakeGenerator:
    def __init__(self, answer: str = "Here is what your notes say."):
        self.answer = answer
        self.prompts: List[str] = []

    def __call__(self, system_prompt: str, user_prompt: str, fallback: str) -> str:
        self.prompts.append(user_prompt)
        return self.answer


class FakeArqPool:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.jobs = []

    async def enqueue_job(self, function, *args, **kwargs):
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.jobs.append((function, args, kwargs))
        return kwargs.get("_job_id")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def embedder(monkeypatch):
    stub = StubEmbedder(settings.EMBEDDING_DIMENSION)
    monkeypatch.setattr(
        embedding_service,
        "generate_embedding",
        lambda text, task_type="RETRIEVAL_DOCUMENT": stub.embed(text),
    )
    return stub


@pytest.fixture(autouse=True)
def labeler(monkeypatch):
    fake = FakeLabeler()
    monkeypatch.setattr(label_service, "generate_cluster_label", fake)
    return fake


@pytest.fixture(autouse=True)
def generator(monkeypatch):
    fake = FakeGenerator()
    monkeypatch.setattr(rag_service, "_generate_response", fake)
    return fake


@pytest.fixture(autouse=True)
def no_speech_provider(monkeypatch):
    def _unexpected(*args, **kwargs):
        raise AssertionError("speech-to-text called without a test stub")

    monkeypatch.setattr(transcript_service, "transcribe", _unexpected)


@pytest.fixture
def arq_pool():
    return FakeArqPool()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    from ideavault.services.audio_service import audio_service

    monkeypatch.setattr(audio_service, "upload_dir", tmp_path / "audio")
    return tmp_path / "audio"


@pytest.fixture
def make_note(db_session, embedder):
    def _make_note(
        user_id: str,
        transcript: str,
        cluster: Optional[Cluster] = None,
        created_at: Optional[datetime] = None,
        embed: bool = True,
        **fields,
    ) -> Note:
        note = Note(
            user_id=user_id,
            transcript=transcript,
            embedding=embedder.embed(transcript) if embed and transcript else None,
            cluster_id=cluster.id if cluster else None,
            **fields,
        )
        if created_at is not None:
            note.created_at = created_at
        db_session.add(note)
        db_session.commit()
        db_session.refresh(note)
        return note

    return _make_note


@pytest.fixture
def make_cluster(db_session):
    def _make_cluster(user_id: str, label: str, created_at: Optional[datetime] = None) -> Cluster:
        cluster = Cluster(user_id=user_id, label=label)
        if created_at is not None:
            cluster.created_at = created_at
        db_session.add(cluster)
        db_session.commit()
        db_session.refresh(cluster)
        return cluster

    return _make_cluster


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 18, 15, 30, tzinfo=timezone.utc)  # a Wednesday
