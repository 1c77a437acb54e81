"""Service for ordering deck words into study sessions."""
import logging
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from ajstudy.config import settings
from ajstudy.exceptions import EmptyDeckError
from ajstudy.models.models import User, Word
from ajstudy.models.quiz_models import Mastery
from ajstudy.monitoring import study_sessions
from ajstudy.services.attempt_service import AttemptService
from ajstudy.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


def study_priority(word: Word, mastery: Mastery) -> tuple:
    """Sort key: lower keys are presented first.

    Never-seen words come first in deck order. Seen words are ordered by
    recent accuracy, then most recently wrong, then least recently seen.
    """
    if not mastery.seen:
        return (0, 0.0, 0.0, 0.0, word.position)
    last_wrong = -mastery.last_wrong.timestamp() if mastery.last_wrong else 0.0
    return (1, mastery.recent_accuracy, last_wrong, mastery.last_seen.timestamp(), word.position)


class StudySession:
    """Lazy, finite sequence of words for one user and deck.

    Each pass yields every word of the deck exactly once. The order of a
    pass is computed from the attempt log when the pass starts, so answers
    recorded during one pass shape the next.
    """

    def __init__(self, user_id: int, deck_id: int, passes: int, order: Callable[[], List[Word]]):
        self.user_id = user_id
        self.deck_id = deck_id
        self.passes = passes
        self.current_pass = 0
        self.presented = 0
        self._order = order
        self._words = self._iterate()

    def _iterate(self) -> Iterator[Word]:
        for number in range(1, self.passes + 1):
            self.current_pass = number
            words = self._order()
            logger.debug(f"Session user {self.user_id} deck {self.deck_id}: pass {number} with {len(words)} words")
            for word in words:
                self.presented += 1
                yield word

    def __iter__(self) -> "StudySession":
        return self

    def __next__(self) -> Word:
        return next(self._words)


class StudyService:
    """Service for ordering deck words into study sessions."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.vocabulary = VocabularyService(db)
        self.attempts = AttemptService(db)

    def prioritize(self, user_id: int, deck_id: int) -> List[Word]:
        """Order the words of a deck for the next pass."""
        words = self.vocabulary.get_deck_words(deck_id)
        mastery: Dict[int, Mastery] = self.attempts.mastery_for_words(user_id, [word.id for word in words])
        return sorted(words, key=lambda word: study_priority(word, mastery[word.id]))

    def start_session(self, user_id: int, deck_id: int, passes: Optional[int] = None) -> StudySession:
        """Start a study session over a deck."""
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise ValueError(f"User {user_id} not found")
        deck = self.vocabulary.get_deck(deck_id)
        if self.vocabulary.get_deck_word_count(deck.id) == 0:
            raise EmptyDeckError(f"Deck {deck.name!r} has no words")
        if passes is None:
            passes = settings.study.passes
        if passes < 1:
            raise ValueError("A session needs at least one pass")

        study_sessions.inc()
        logger.info(f"Starting study session for user {user_id} on deck {deck.name!r} ({passes} passes)")
        return StudySession(user_id, deck.id, passes, lambda: self.prioritize(user_id, deck.id))
