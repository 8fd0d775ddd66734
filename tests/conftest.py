# FILE: tests/conftest.py
"""
Pytest configuration for Beacon test suite.

Configures:
- pytest-asyncio for async test support
- In-memory SQLite sessions shared across threads (StaticPool)
- A scripted generative backend and an injectable rate limiter
- A TestClient with those wired in through dependency overrides
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.errors import UpstreamFailure
from app.llm.backend import GenerativeBackend

# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]


class FakeBackend(GenerativeBackend):
    """Scripted backend: yields `deltas`, optionally failing before delta `fail_at`."""

    def __init__(self, deltas=("The library ", "opens at 9am."), fail_at=None, failure_message="backend exploded"):
        self.deltas = list(deltas)
        self.fail_at = fail_at
        self.failure_message = failure_message
        self.calls = []
        self.closed = False

    async def stream(self, system_instruction, history, cancel_token=None, model_selector=None):
        self.calls.append({
            "system_instruction": system_instruction,
            "history": list(history),
            "model_selector": model_selector,
            "cancel_token": cancel_token,
        })
        try:
            for i, delta in enumerate(self.deltas):
                if self.fail_at == i:
                    raise UpstreamFailure(self.failure_message)
                if cancel_token is not None and cancel_token.cancelled:
                    return
                yield delta
            if self.fail_at is not None and self.fail_at >= len(self.deltas):
                raise UpstreamFailure(self.failure_message)
        finally:
            self.closed = True


@pytest.fixture
def db_session():
    """Fresh in-memory database with every table created."""
    from app.db import Base
    from app.memory import models  # noqa: F401
    from app.cache import models as cache_models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def rate_limiter():
    from app.ratelimit import InMemoryRateLimiter
    return InMemoryRateLimiter()


@pytest.fixture
def client(db_session, fake_backend, rate_limiter):
    """TestClient over the real app, with the database, backend and limiter swapped."""
    from fastapi.testclient import TestClient

    import main
    from app.db import get_db
    from app.llm.backend import get_backend
    from app.ratelimit import get_rate_limiter

    def override_get_db():
        yield db_session

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[get_backend] = lambda: fake_backend
    main.app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    yield TestClient(main.app)

    main.app.dependency_overrides.clear()


@pytest.fixture
def make_assistant(db_session):
    """Create an assistant, optionally with knowledge entries given as create dicts."""
    from app.memory import schemas, service

    def _make(knowledge=(), **fields):
        fields.setdefault("name", "Library Helper")
        fields.setdefault("system_prompt", "You are the city library's assistant.")
        assistant = service.create_assistant(db_session, schemas.AssistantCreate(**fields))
        for item in knowledge:
            service.create_knowledge_entry(
                db_session, assistant.id, schemas.KnowledgeEntryCreate.model_validate(item)
            )
        return assistant

    return _make


FAQ_LIBRARY_CARD = {
    "title": "Library card",
    "source_kind": "faq",
    "metadata": {"question": "How do I get a library card?", "response": "Visit the front desk."},
}

TEXT_OPENING_HOURS = {
    "title": "Opening hours",
    "source_kind": "text",
    "content": "The library opens at 9am and closes at 6pm on weekdays.",
}

TEXT_CARD_POLICY = {
    "title": "Card policy",
    "source_kind": "text",
    "content": "Library card policy: cards are free for residents and renew every year.",
}


@pytest.fixture
def knowledge():
    """Reusable knowledge entry payloads."""
    return {
        "faq_library_card": FAQ_LIBRARY_CARD,
        "text_opening_hours": TEXT_OPENING_HOURS,
        "text_card_policy": TEXT_CARD_POLICY,
    }
