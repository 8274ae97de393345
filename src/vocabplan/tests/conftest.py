"""Test configuration."""
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="vocabplan-test-"))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vocabplan.clock import ManualClock
from vocabplan.config import LearningSettings
from vocabplan.models.base import Base
from vocabplan.models import models  # noqa: F401
from vocabplan.models.vocab_models import Book, Identity, Word
from vocabplan.services.catalog_service import WordCatalog
from vocabplan.services.store_service import BlobStore
from vocabplan.services.study_service import StudyService

fake = Faker()

START = datetime(2024, 3, 10, 9, 0, tzinfo=UTC)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clock() -> ManualClock:
    """A clock frozen at 2024-03-10 09:00 UTC."""
    return ManualClock(START, tz=UTC)


@pytest.fixture
def learning() -> LearningSettings:
    """Default learning settings."""
    return LearningSettings()


@pytest.fixture
def fruit_book() -> Book:
    """A small book of fruits, deliberately not in alphabetical order."""
    words = [
        Word(word="cherry", meaning="樱桃", part_of_speech="n.", level="A1"),
        Word(word="apple", meaning="苹果", part_of_speech="n.", level="A1"),
        Word(word="banana", meaning="香蕉", part_of_speech="n.", level="A1"),
    ]
    return Book(id="fruit", title="Fruit", words=words, is_builtin=True)


@pytest.fixture
def animal_book() -> Book:
    """A small book of animals."""
    words = [
        Word(word="cat", meaning="猫", part_of_speech="n.", level="A1"),
        Word(word="dog", meaning="狗", part_of_speech="n.", level="A1"),
    ]
    return Book(id="animals", title="Animals", words=words, is_builtin=True)


@pytest.fixture
def catalog(fruit_book: Book, animal_book: Book) -> WordCatalog:
    """A catalog with the fruit and animal books."""
    return WordCatalog([fruit_book, animal_book])


@pytest.fixture
def store(db: Session) -> BlobStore:
    """A blob store on the test database."""
    return BlobStore(db)


@pytest.fixture
def identity() -> Identity:
    """A learner identity."""
    return Identity(id=fake.uuid4(), username=fake.user_name(), avatar_color=fake.hex_color())


@pytest.fixture
def study(store: BlobStore, catalog: WordCatalog, clock: ManualClock, learning: LearningSettings, identity: Identity) -> StudyService:
    """A study session with the identity logged in and no plan yet."""
    service = StudyService(store, catalog, clock, learning)
    service.switch_user(identity)
    return service
