"""Errors raised by the study engine."""
from typing import Optional


class StudyError(Exception):
    """Base class for study engine errors."""


class InsufficientDeckSize(StudyError):
    """A multiple-choice question needs more distinct definitions than the deck has."""

    def __init__(self, deck_id: int, required: int, available: int):
        self.deck_id = deck_id
        self.required = required
        self.available = available
        super().__init__(
            f"Deck {deck_id} has {available} distinct definitions, {required} required"
        )


class NoDataError(StudyError):
    """The user has no attempts in the requested range."""

    def __init__(self, user_id: int, message: Optional[str] = None):
        self.user_id = user_id
        super().__init__(message or f"No attempts recorded for user {user_id}")


class EmptyDeckError(StudyError, ValueError):
    """A study session was requested for a deck without words."""


class DuplicateDeckError(StudyError, ValueError):
    pass


class DuplicateWordError(StudyError, ValueError):
    pass


class IngestionError(StudyError):
    """A word list could not be parsed."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class AuthenticationError(StudyError):
    pass


class AttemptLogViolation(StudyError):
    """Something tried to change or remove a recorded attempt."""
