"""Pytest configuration and fixtures for the conversation backend tests."""

import os

# Set test environment variables before application modules read them
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from errors import AgentResponseError
from models import Base
from services.messages import MessageService
from services.titles import TitleGenerator


class FakeResponder:
    """Agent responder double that echoes the latest message."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def respond(self, history, thread_id):
        self.calls.append((list(history), thread_id))
        if self.error is not None:
            raise self.error
        if self.reply is not None:
            if not self.reply:
                raise AgentResponseError("No response generated from AI")
            return self.reply
        return f"Echo: {history[-1].content}"


class FakeTitleModel:
    """Chat model double answering title prompts."""

    def __init__(self, answer='"Title: Weather Chat Testing"', error=None):
        self.answer = answer
        self.error = error
        self.prompts = []

    async def ainvoke(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.answer)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to a fresh in-memory database."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
def title_model():
    return FakeTitleModel()


@pytest.fixture
def title_generator(title_model):
    return TitleGenerator(title_model)


@pytest.fixture
def message_service(responder, title_generator):
    return MessageService(responder=responder, title_generator=title_generator)


@pytest.fixture
def client(db, message_service):
    """API client with the database and agent replaced by test doubles."""
    from database import get_db
    from main import app, get_message_service

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_message_service] = lambda: message_service
    yield TestClient(app)
    app.dependency_overrides.clear()
