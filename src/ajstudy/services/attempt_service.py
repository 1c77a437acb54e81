"""Append-only attempt log and the mastery view derived from it."""
import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ajstudy.config import settings
from ajstudy.models.base import as_utc, utcnow
from ajstudy.models.models import Attempt, User, Word
from ajstudy.models.quiz_models import Mastery, Modality
from ajstudy.monitoring import attempts_recorded

logger = logging.getLogger(__name__)

# A fixed stripe of locks; users sharing a stripe are serialised together
LOCK_STRIPES = 64
_user_locks: List[threading.Lock] = [threading.Lock() for _ in range(LOCK_STRIPES)]


def user_lock(user_id: int) -> threading.Lock:
    """Get the lock that serialises attempt writes for one user."""
    return _user_locks[user_id % LOCK_STRIPES]


def compute_mastery(
    user_id: int,
    word_id: int,
    attempts: Sequence[Attempt],
    recent_window: Optional[int] = None,
) -> Mastery:
    """Derive mastery for one word from its attempts in log order."""
    if recent_window is None:
        recent_window = settings.study.recent_window
    if not attempts:
        return Mastery(user_id=user_id, word_id=word_id)

    streak = 0
    for attempt in reversed(attempts):
        if not attempt.is_correct:
            break
        streak += 1

    wrong = [attempt for attempt in attempts if not attempt.is_correct]
    recent = attempts[-recent_window:]
    return Mastery(
        user_id=user_id,
        word_id=word_id,
        attempts=len(attempts),
        correct=sum(1 for attempt in attempts if attempt.is_correct),
        last_correct=bool(attempts[-1].is_correct),
        streak=streak,
        last_seen=as_utc(attempts[-1].answered_at),
        last_wrong=as_utc(wrong[-1].answered_at) if wrong else None,
        recent_accuracy=sum(1 for attempt in recent if attempt.is_correct) / len(recent),
    )


def longest_streak(attempts: Iterable[Attempt]) -> int:
    """Longest run of consecutive correct answers."""
    best = current = 0
    for attempt in attempts:
        current = current + 1 if attempt.is_correct else 0
        best = max(best, current)
    return best


class AttemptService:
    """Service for recording answers and reading them back."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def record_attempt(
        self,
        user_id: int,
        word_id: int,
        is_correct: bool,
        modality: Modality,
        answered_at: Optional[datetime] = None,
    ) -> Attempt:
        """Append one attempt to the user's log."""
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise ValueError(f"User {user_id} not found")
        if not self.db.query(Word.id).filter(Word.id == word_id).first():
            raise ValueError(f"Word {word_id} not found")
        modality = Modality(modality)

        with user_lock(user_id):
            attempt = Attempt(
                user_id=user_id,
                word_id=word_id,
                is_correct=bool(is_correct),
                modality=modality,
                answered_at=as_utc(answered_at) if answered_at else utcnow(),
            )
            self.db.add(attempt)
            self.db.commit()
        self.db.refresh(attempt)

        attempts_recorded.labels(modality=modality.value, correct=str(bool(is_correct)).lower()).inc()
        logger.debug(
            f"Recorded attempt {attempt.id}: user {user_id}, word {word_id}, "
            f"{modality.value}, correct={bool(is_correct)}"
        )
        return attempt

    def get_attempts(
        self,
        user_id: int,
        word_ids: Optional[Iterable[int]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Attempt]:
        """Get a user's attempts in log order, optionally filtered."""
        query = self.db.query(Attempt).filter(Attempt.user_id == user_id)
        if word_ids is not None:
            query = query.filter(Attempt.word_id.in_(list(word_ids)))
        attempts = query.order_by(Attempt.answered_at, Attempt.id).all()

        start, end = as_utc(start), as_utc(end)
        if start is None and end is None:
            return attempts
        return [
            attempt for attempt in attempts
            if (start is None or as_utc(attempt.answered_at) >= start)
            and (end is None or as_utc(attempt.answered_at) <= end)
        ]

    def count_attempts(self, user_id: int) -> int:
        """Get the number of attempts in a user's log."""
        return self.db.query(Attempt).filter(Attempt.user_id == user_id).count()

    def get_mastery(self, user_id: int, word_id: int) -> Mastery:
        """Recompute mastery for one word."""
        return compute_mastery(user_id, word_id, self.get_attempts(user_id, word_ids=[word_id]))

    def get_deck_mastery(self, user_id: int, deck_id: int) -> Dict[int, Mastery]:
        """Recompute mastery for every word of a deck."""
        word_ids = [row.id for row in self.db.query(Word.id).filter(Word.deck_id == deck_id)]
        return self.mastery_for_words(user_id, word_ids)

    def mastery_for_words(
        self,
        user_id: int,
        word_ids: Iterable[int],
        attempts: Optional[Sequence[Attempt]] = None,
    ) -> Dict[int, Mastery]:
        """Group attempts by word and derive mastery for each word."""
        word_ids = list(word_ids)
        if attempts is None:
            attempts = self.get_attempts(user_id, word_ids=word_ids)
        by_word = defaultdict(list)
        for attempt in attempts:
            by_word[attempt.word_id].append(attempt)
        return {
            word_id: compute_mastery(user_id, word_id, by_word.get(word_id, []))
            for word_id in word_ids
        }
