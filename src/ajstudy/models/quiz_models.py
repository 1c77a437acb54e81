"""Value objects passed between the study, quiz and progress services."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


class Modality(Enum):
    """How a question is asked."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"


@dataclass
class WordEntry:
    """A word parsed from an external list, before it is stored."""
    spelling: str
    definition: str
    example: Optional[str] = None


@dataclass
class ImportResult:
    """Outcome of importing a word list into a deck."""
    deck_id: int
    deck_name: str
    added: int = 0
    skipped: List[str] = field(default_factory=list)


@dataclass
class Question:
    """A generated question.

    For multiple choice ``options`` holds the shuffled definitions and
    ``correct_index`` points at the word's own definition. For true/false
    ``statement`` is the definition shown next to the word and ``is_true``
    says whether it belongs to it.
    """
    word_id: int
    deck_id: int
    modality: Modality
    prompt: str
    options: List[str] = field(default_factory=list)
    correct_index: Optional[int] = None
    statement: Optional[str] = None
    is_true: Optional[bool] = None

    @property
    def correct_answer(self) -> Union[str, bool]:
        if self.modality == Modality.MULTIPLE_CHOICE:
            return self.options[self.correct_index]
        return self.is_true


@dataclass(frozen=True)
class Mastery:
    """How well a user knows a word, derived from their attempts."""
    user_id: int
    word_id: int
    attempts: int = 0
    correct: int = 0
    last_correct: Optional[bool] = None
    streak: int = 0
    last_seen: Optional[datetime] = None
    last_wrong: Optional[datetime] = None
    recent_accuracy: float = 0.0

    @property
    def seen(self) -> bool:
        return self.attempts > 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0


@dataclass
class DeckProgress:
    """Per-deck part of a progress report."""
    deck_id: int
    deck_name: str
    words_total: int
    words_attempted: int
    words_mastered: int
    attempts: int
    correct_attempts: int

    @property
    def completion(self) -> float:
        return self.words_attempted / self.words_total if self.words_total else 0.0

    @property
    def accuracy(self) -> float:
        return self.correct_attempts / self.attempts if self.attempts else 0.0


@dataclass
class ProgressReport:
    """Summary of a user's attempts in a date range."""
    user_id: int
    start: Optional[datetime]
    end: Optional[datetime]
    total_attempts: int
    correct_attempts: int
    current_streak: int
    best_streak: int
    decks: List[DeckProgress] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        return self.correct_attempts / self.total_attempts if self.total_attempts else 0.0
