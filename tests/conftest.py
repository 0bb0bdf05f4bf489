"""Pytest configuration and fixtures."""

import asyncio
from typing import AsyncGenerator, Callable, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from rabbithole.agents.synthesizer import AnswerSynthesizer
from rabbithole.main import app
from rabbithole.persistence.database import DatabaseService
from rabbithole.persistence.models import ExplorationSession, StructuredAnswer, Turn
from rabbithole.services.exploration_session import ExplorationSessions
from rabbithole.services.rabbithole_service import RabbitHoleService, get_rabbithole_service

SCENARIO_A_RESPONSE = (
    "#### Intro\nSome text.\n\nFollow-up Questions:\n"
    "1. What about X?\n2. Is Y true?\n3. Could Z happen?"
)


class FakeSearchClient:
    """In-process search collaborator recording its calls."""

    def __init__(self, response: Optional[dict] = None, error: Optional[Exception] = None):
        self.response = response if response is not None else {"results": [], "images": []}
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[dict] = []

    async def search(self, query, max_results=None, include_images=None):
        self.calls.append(
            {"query": query, "max_results": max_results, "include_images": include_images}
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


class FakeLLM:
    """In-process language model returning a canned reply."""

    def __init__(self, text: str = SCENARIO_A_RESPONSE, error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: list[Sequence] = []

    async def complete(self, messages, model_hint=None):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def scenario_a_response() -> str:
    """Reference model reply with three numbered follow-up questions."""
    return SCENARIO_A_RESPONSE


@pytest.fixture
def sample_search_results() -> dict:
    """Raw search results with some fields missing."""
    return {
        "results": [
            {
                "title": "Rayleigh scattering",
                "url": "https://example.com/rayleigh",
                "author": "A. Physicist",
                "image": "https://example.com/rayleigh.png",
                "content": "Shorter wavelengths scatter more.",
            },
            {"url": "https://example.com/sky"},
        ],
        "images": [
            {"url": "https://example.com/sky.jpg", "description": "Blue sky"},
            {"url": "https://example.com/sunset.jpg"},
        ],
    }


@pytest.fixture
def fake_search(sample_search_results) -> FakeSearchClient:
    return FakeSearchClient(response=sample_search_results)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def synthesizer(fake_search, fake_llm) -> AnswerSynthesizer:
    return AnswerSynthesizer(search_client=fake_search, llm=fake_llm)


@pytest_asyncio.fixture
async def test_db(tmp_path) -> DatabaseService:
    """Create a test database."""
    db = DatabaseService(str(tmp_path / "test.db"))
    await db.init_db()
    return db


@pytest.fixture
def sessions(test_db) -> ExplorationSessions:
    return ExplorationSessions(test_db)


@pytest.fixture
def service(sessions, synthesizer) -> RabbitHoleService:
    return RabbitHoleService(sessions=sessions, synthesizer=synthesizer)


@pytest_asyncio.fixture
async def client(service) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the test service."""
    app.dependency_overrides[get_rabbithole_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_answer() -> Callable[..., StructuredAnswer]:
    """Factory for answers with a given number of follow-up questions."""

    def _make(questions: int = 0, text: str = "Some text.") -> StructuredAnswer:
        return StructuredAnswer(
            main_text=text,
            follow_up_questions=[f"Question {q}?" for q in range(questions)],
        )

    return _make


@pytest.fixture
def make_session(make_answer) -> Callable[..., ExplorationSession]:
    """Factory for in-memory sessions; one entry per turn giving its question count."""

    def _make(question_counts: Sequence[int], session_id: str = "s1") -> ExplorationSession:
        turns = [
            Turn(query=f"Query {i}", answer=make_answer(count, f"Answer {i}"), sequence_index=i)
            for i, count in enumerate(question_counts)
        ]
        return ExplorationSession(
            id=session_id,
            root_query=turns[0].query if turns else "",
            mode="expansive",
            turns=turns,
        )

    return _make
