"""Test configuration."""
import os
import random
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="hskdeck-test-"))

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hskdeck.config import ensure_directories
from hskdeck.models.base import init_db
from hskdeck.services.deck_builder import DeckBuilder
from hskdeck.services.progress_store import ProgressStore
from hskdeck.services.session_service import SessionService
from hskdeck.tests.factories import HSK_WORDS


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    # Ensure test directories exist
    ensure_directories()

    yield


@pytest.fixture
def session_factory() -> Generator[Callable[[], Session], None, None]:
    """Session factory bound to a fresh in-memory database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory: Callable[[], Session]) -> ProgressStore:
    """Progress store with default state."""
    store = ProgressStore(session_factory=session_factory, storage_name="hsk-test")
    store.load()
    return store


@pytest.fixture
def hsk_words() -> List[Dict]:
    return [dict(word) for word in HSK_WORDS]


@pytest.fixture
def session(store: ProgressStore, hsk_words: List[Dict]) -> SessionService:
    """Session with the five HSK words loaded."""
    session = SessionService(store, deck_builder=DeckBuilder(random.Random(1234)))
    session.load_vocabulary(hsk_words)
    return session
