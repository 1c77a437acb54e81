"""Test configuration."""
import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.gettempdir()) / f'ajstudy_test_{os.getpid()}.db'}"
os.environ["AUTH_SSO_ISSUERS"] = "https://sso.school.example"
os.environ["AUTH_PASSWORD_METHOD"] = "pbkdf2:sha256:1000"
os.environ["METRICS_ENABLED"] = "false"

# Import after environment setup
from sqlalchemy.orm import Session  # noqa: E402

from ajstudy.models.base import Base, SessionLocal, engine, init_db  # noqa: E402
from ajstudy.models.models import Deck, User  # noqa: E402
from ajstudy.services.ingestion_service import IngestionService  # noqa: E402

PETS = [
    ("cat", "feline pet"),
    ("dog", "canine pet"),
    ("bird", "flying pet"),
    ("fish", "aquatic pet"),
]

fake = Faker()


@pytest.fixture(autouse=True)
def setup_database():
    """Recreate all tables before each test."""
    engine.dispose()
    Base.metadata.drop_all(bind=engine)
    init_db()

    yield

    engine.dispose()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def user(db: Session) -> User:
    """Create a test user."""
    user = User(display_name=fake.first_name(), auth_provider="sso", external_id=fake.uuid4())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_deck(db: Session) -> Callable[..., Deck]:
    """Factory for decks filled with (spelling, definition) pairs."""
    def _make_deck(entries=None, name=None) -> Deck:
        result = IngestionService(db).import_words(name or fake.unique.word(), entries or PETS)
        return db.get(Deck, result.deck_id)
    return _make_deck


@pytest.fixture
def pets_deck(make_deck) -> Deck:
    """The four-pet deck."""
    return make_deck(PETS, name="pets")
