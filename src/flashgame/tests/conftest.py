"""Test configuration."""
import os
import random
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Callable, Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from flashgame.models.base import Base
from flashgame.models.game_models import Difficulty, Word
from flashgame.models import models  # noqa: F401
from flashgame.services.vocabulary_service import VocabularyService

fake = Faker()


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Session factory bound to a private in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def catalog(db: Session) -> VocabularyService:
    return VocabularyService(db)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_words() -> Callable[[int], List[Word]]:
    """Build ``count`` distinct cards."""
    def _make(count: int) -> List[Word]:
        return [
            Word(
                id=i + 1,
                prompt=f"{fake.word()}-{i}",
                answer=fake.word(),
                difficulty=Difficulty.EASY,
            )
            for i in range(count)
        ]
    return _make
