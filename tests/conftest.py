import os

# Environment must be in place before the app (and core.config) is imported
os.environ["ENV"] = "testing"
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["REFRESH_TOKEN_HASH_ROUNDS"] = "4"
os.environ.setdefault("LOG_DIR", "logs")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.database import Base
from middleware.rate_limiter import RateLimiter
from models.users import User
from schemas.meeting_schemas import TranscriptAnalysis
from utils.hashing import get_password_hash

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

TEST_PASSWORD = "TestPassword123"


class FakeClock:
    """Manually advanced clock for rate limiter tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeExtractionService:
    def __init__(self, analysis: dict | None = None, error: Exception | None = None):
        self.analysis = analysis or {
            "summary": "Sprint planning.",
            "actionItems": [
                {
                    "title": "Write the release notes",
                    "description": "Jane owns the notes for Friday's release",
                    "priority": "HIGH",
                    "suggestedDueDate": None
                }
            ]
        }
        self.error = error
        self.calls = []

    async def analyze(self, transcript: str, user_name: str) -> TranscriptAnalysis:
        self.calls.append((transcript, user_name))
        if self.error is not None:
            raise self.error
        return TranscriptAnalysis.model_validate(self.analysis)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter()


@pytest.fixture
def extraction_service() -> FakeExtractionService:
    return FakeExtractionService()


@pytest.fixture
async def client(session: Session, rate_limiter: RateLimiter, extraction_service: FakeExtractionService):
    """
    Yields an HTTP client that talks to the app in-process.

    The app opens its own sessions on the test database; the `session`
    fixture is for arranging data and asserting on it.
    """
    original_state = (
        app.state.session_factory,
        app.state.rate_limiter,
        app.state.extraction_service
    )
    app.state.session_factory = TestingSessionLocal
    app.state.rate_limiter = rate_limiter
    app.state.extraction_service = extraction_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    (
        app.state.session_factory,
        app.state.rate_limiter,
        app.state.extraction_service
    ) = original_state


@pytest.fixture
def test_user(session: Session) -> User:
    user = User(
        email="jane@example.com",
        name="Jane",
        hashed_password=get_password_hash(TEST_PASSWORD)
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

