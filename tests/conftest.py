"""Shared test fixtures."""
import json
from pathlib import Path
from typing import Generator

import httpx
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from calllog.models.call_log import CallLog  # noqa: F401
from calllog.models.sync import SyncRun, UserSyncStatus  # noqa: F401
from calllog.models.user import User

from calllog.db.store import CallLogStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

AGENT_JSON = (FIXTURES_DIR / "agent_logs.json").read_text()
AGENT_TEXT = (FIXTURES_DIR / "agent_logs.txt").read_text()


def json_logs() -> list:
    """A fresh copy of the JSON fixture's logs (the fetcher mutates records)."""
    return json.loads(AGENT_JSON)["logs"]


def make_agent_transport(responses: dict) -> httpx.MockTransport:
    """
    MockTransport serving GET /get-log/{username} per agent host.

    Args:
        responses: host → httpx.Response, or an Exception instance to raise.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        resp = responses.get(request.url.host)
        if resp is None:
            return httpx.Response(404)
        if isinstance(resp, Exception):
            raise resp
        # Fresh copy per request so one canned response can be served repeatedly
        return httpx.Response(resp.status_code, content=resp.content, headers=resp.headers)

    return httpx.MockTransport(handler)


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="store")
def store_fixture(engine) -> CallLogStore:
    return CallLogStore(engine)


@pytest.fixture(name="alice")
def alice_fixture(test_session: Session) -> User:
    """A persisted user with a username."""
    user = User(username="alice", email="alice@example.com", name="Alice")
    test_session.add(user)
    test_session.commit()
    test_session.refresh(user)
    return user
