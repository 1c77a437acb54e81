"""Database models for the study engine."""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Session, relationship

from ajstudy.exceptions import AttemptLogViolation
from ajstudy.models.base import Base, TimestampMixin, utcnow
from ajstudy.models.quiz_models import Modality


class User(Base, TimestampMixin):
    """User model. Credentials live with the identity provider."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("auth_provider", "external_id"),)

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String, nullable=False)
    auth_provider = Column(String, nullable=False, default="sso")  # sso, custom
    external_id = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)

    # Relationships
    attempts = relationship("Attempt", back_populates="user", order_by="Attempt.id")
    credential = relationship("UserCredential", back_populates="user", uselist=False)
    logs = relationship("UserLog", back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.id} {self.display_name!r}>"


class UserCredential(Base, TimestampMixin):
    """Password hash for users of the custom provider."""

    __tablename__ = "user_credentials"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    username = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)

    user = relationship("User", back_populates="credential")


class Deck(Base, TimestampMixin):
    """Deck model, e.g. one week's spelling list."""

    __tablename__ = "decks"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String)

    # Relationships
    words = relationship("Word", back_populates="deck", order_by="Word.position")

    def __repr__(self) -> str:
        return f"<Deck {self.id} {self.name!r}>"


class Word(Base, TimestampMixin):
    """Word model."""

    __tablename__ = "words"
    __table_args__ = (UniqueConstraint("deck_id", "position"),)

    id = Column(Integer, primary_key=True)
    spelling = Column(String, nullable=False)
    definition = Column(String, nullable=False)
    example = Column(String)
    deck_id = Column(Integer, ForeignKey("decks.id"), nullable=False)
    position = Column(Integer, nullable=False)  # order within the deck

    # Relationships
    deck = relationship("Deck", back_populates="words")
    attempts = relationship("Attempt", back_populates="word")

    def __repr__(self) -> str:
        return f"<Word {self.id} {self.spelling!r}>"


class Attempt(Base):
    """One recorded answer. Rows are only ever inserted."""

    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    word_id = Column(Integer, ForeignKey("words.id"), nullable=False, index=True)
    answered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_correct = Column(Boolean, nullable=False)
    modality = Column(Enum(Modality, native_enum=False), nullable=False)

    # Relationships
    user = relationship("User", back_populates="attempts")
    word = relationship("Word", back_populates="attempts")


class UserLog(Base, TimestampMixin):
    """User activity log model."""

    __tablename__ = "user_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(String, nullable=False)
    level = Column(String, nullable=False)  # INFO, WARNING, ERROR
    category = Column(String, nullable=False)  # e.g., "auth", "ingestion"

    # Relationships
    user = relationship("User", back_populates="logs")


@event.listens_for(Session, "before_flush")
def protect_attempt_log(session, flush_context, instances):
    """Refuse to flush updates or deletes of recorded attempts."""
    for obj in session.deleted:
        if isinstance(obj, Attempt):
            raise AttemptLogViolation(f"Attempt {obj.id} cannot be deleted")
    for obj in session.dirty:
        if isinstance(obj, Attempt) and session.is_modified(obj, include_collections=False):
            raise AttemptLogViolation(f"Attempt {obj.id} cannot be modified")


@event.listens_for(Session, "do_orm_execute")
def protect_attempt_log_statements(orm_execute_state):
    """Refuse bulk UPDATE and DELETE statements against the attempt log."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and mapper.class_ is Attempt:
        action = "updated" if orm_execute_state.is_update else "deleted"
        raise AttemptLogViolation(f"Attempts cannot be {action} in bulk")
