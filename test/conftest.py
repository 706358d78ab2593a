"""
Shared pytest fixtures for the test suite.

Every test runs against an in-memory SQLite database and fake external
collaborators: no identity server, model vendor or Postgres is contacted.
"""

import json
import os
import uuid

import pytest

# Minimal env so that app.core.config / app.db.database can load on import
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests-only-32chars!")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("IDENTITY_PROVIDER", "jwt")
os.environ.setdefault("LLM_PROVIDER", "openai")

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.database import Base, get_db
from app.models import Teacher, Quiz, QuizQuestion
from app.services.identity_provider import JWTIdentityProvider, get_identity_provider
from app.services.llm_client import OpenAIGenerationClient, get_generation_client


def make_questions(count, **overrides):
    questions = []
    for i in range(count):
        question = {
            "text": f"Question {i + 1}?",
            "options": ["A", "B", "C", "D"],
            "correctOption": i % 4,
        }
        question.update(overrides)
        questions.append(question)
    return questions


class FakeGenerationClient(OpenAIGenerationClient):
    """Returns canned completions; by default as many questions as the prompt asks for."""

    provider = "fake"

    def __init__(self, text=None, error=None):
        super().__init__(api_key="fake-key", model="fake-model", base_url="http://fake")
        self.text = text
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.text is not None:
            return self.text
        count = int(prompt.split("Create exactly ", 1)[1].split(" ", 1)[0])
        return json.dumps(make_questions(count))


class SpyIdentityProvider(JWTIdentityProvider):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def verify(self, token):
        self.calls += 1
        return super().verify(token)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def teacher(db):
    record = Teacher(id=str(uuid.uuid4()), name="Ada Teacher", email="ada@school.edu")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def bearer_for(principal_id, email="someone@school.edu"):
    token = create_access_token({"sub": principal_id, "email": email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(teacher):
    return bearer_for(teacher.id, teacher.email)


@pytest.fixture
def fake_llm():
    return FakeGenerationClient()


@pytest.fixture
def identity_spy():
    return SpyIdentityProvider()


@pytest.fixture
def client(session_factory, fake_llm, identity_spy):
    from fastapi.testclient import TestClient
    from main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_generation_client] = lambda: fake_llm
    app.dependency_overrides[get_identity_provider] = lambda: identity_spy
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_question_inserts():
    """Make every quiz_questions INSERT fail at flush time."""

    def _refuse(mapper, connection, target):
        raise OperationalError("INSERT INTO quiz_questions", {}, Exception("simulated write failure"))

    event.listen(QuizQuestion, "before_insert", _refuse)
    yield
    event.remove(QuizQuestion, "before_insert", _refuse)


def count_quizzes(session_factory):
    session = session_factory()
    try:
        return session.query(Quiz).count()
    finally:
        session.close()
