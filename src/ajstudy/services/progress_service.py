"""Progress reports aggregated from the attempt log."""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ajstudy.config import settings
from ajstudy.exceptions import NoDataError
from ajstudy.models.base import as_utc
from ajstudy.models.models import Deck, User, Word
from ajstudy.models.quiz_models import DeckProgress, Mastery, ProgressReport
from ajstudy.monitoring import reports_generated
from ajstudy.services.attempt_service import AttemptService, longest_streak

logger = logging.getLogger(__name__)


class ProgressService:
    """Read-only summaries of a user's attempts."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.attempts = AttemptService(db)

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ValueError(f"User {user_id} not found")
        return user

    def get_report(
        self,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ProgressReport:
        """Summarise a user's attempts, optionally within a date range.

        Raises:
            NoDataError: the user has no attempts in the range. Callers
                should show an empty state rather than an error.
        """
        self._get_user(user_id)
        start, end = as_utc(start), as_utc(end)
        if start and end and start > end:
            raise ValueError("Report start must not be after its end")

        attempts = self.attempts.get_attempts(user_id, start=start, end=end)
        if not attempts:
            logger.info(f"No attempts for user {user_id} between {start} and {end}")
            raise NoDataError(user_id)

        by_deck: Dict[int, list] = defaultdict(list)
        deck_of_word = dict(self.db.query(Word.id, Word.deck_id).filter(
            Word.id.in_(list({attempt.word_id for attempt in attempts}))
        ).all())
        for attempt in attempts:
            by_deck[deck_of_word[attempt.word_id]].append(attempt)

        decks = []
        for deck in self.db.query(Deck).filter(Deck.id.in_(list(by_deck))).order_by(Deck.id):
            decks.append(self._deck_progress(user_id, deck, by_deck[deck.id]))

        # Streaks run over the whole range in log order
        current = 0
        for attempt in reversed(attempts):
            if not attempt.is_correct:
                break
            current += 1

        reports_generated.inc()
        report = ProgressReport(
            user_id=user_id,
            start=start,
            end=end,
            total_attempts=len(attempts),
            correct_attempts=sum(1 for attempt in attempts if attempt.is_correct),
            current_streak=current,
            best_streak=longest_streak(attempts),
            decks=decks,
        )
        logger.info(f"Progress report for user {user_id}: {report.total_attempts} attempts, accuracy {report.accuracy:.2f}")
        return report

    def _deck_progress(self, user_id: int, deck: Deck, attempts: list) -> DeckProgress:
        word_ids = [word.id for word in deck.words]
        mastery = self.attempts.mastery_for_words(user_id, word_ids, attempts)
        return DeckProgress(
            deck_id=deck.id,
            deck_name=deck.name,
            words_total=len(word_ids),
            words_attempted=sum(1 for state in mastery.values() if state.seen),
            words_mastered=sum(1 for state in mastery.values() if state.streak >= settings.study.mastery_streak),
            attempts=len(attempts),
            correct_attempts=sum(1 for attempt in attempts if attempt.is_correct),
        )

    def get_word_report(self, user_id: int, deck_id: int) -> List[Mastery]:
        """Mastery for each word of a deck, in deck order."""
        self._get_user(user_id)
        mastery = self.attempts.get_deck_mastery(user_id, deck_id)
        words = self.db.query(Word).filter(Word.deck_id == deck_id).order_by(Word.position).all()
        if not words:
            raise ValueError(f"Deck {deck_id} not found or empty")
        return [mastery[word.id] for word in words]
