"""Tests for progress reports."""
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from ajstudy.exceptions import NoDataError
from ajstudy.models.models import Deck, User
from ajstudy.models.quiz_models import Modality
from ajstudy.services.attempt_service import AttemptService
from ajstudy.services.progress_service import ProgressService

START = datetime(2024, 9, 2, 8, 0, tzinfo=UTC)


@pytest.fixture
def progress(db: Session) -> ProgressService:
    """Create a progress service instance."""
    return ProgressService(db)


def answer_all(db: Session, user: User, answers, start=START) -> None:
    attempts = AttemptService(db)
    for minute, (word, is_correct) in enumerate(answers):
        attempts.record_attempt(user.id, word.id, is_correct, Modality.MULTIPLE_CHOICE, start + timedelta(minutes=minute))


def test_no_attempts_raises_no_data(progress: ProgressService, user: User) -> None:
    """A user with zero attempts gets NoDataError, not an empty report."""
    with pytest.raises(NoDataError) as excinfo:
        progress.get_report(user.id)
    assert excinfo.value.user_id == user.id


def test_report_totals(db: Session, progress: ProgressService, user: User, pets_deck: Deck) -> None:
    cat, dog, bird, fish = pets_deck.words
    answer_all(db, user, [(cat, True), (cat, True), (dog, False), (cat, True), (bird, True), (dog, True)])

    report = progress.get_report(user.id)

    assert report.total_attempts == 6
    assert report.correct_attempts == 5
    assert report.accuracy == pytest.approx(5 / 6)
    assert report.current_streak == 3
    assert report.best_streak == 3
    assert len(report.decks) == 1
    deck = report.decks[0]
    assert deck.deck_name == "pets"
    assert deck.words_total == 4
    assert deck.words_attempted == 3
    assert deck.completion == 0.75
    assert deck.words_mastered == 1  # cat has three correct in a row


def test_report_date_range(db: Session, progress: ProgressService, user: User, pets_deck: Deck) -> None:
    cat, dog = pets_deck.words[:2]
    answer_all(db, user, [(cat, False), (dog, True)], start=START)
    answer_all(db, user, [(cat, True)], start=START + timedelta(days=7))

    report = progress.get_report(user.id, start=START + timedelta(days=1))
    assert report.total_attempts == 1
    assert report.decks[0].words_attempted == 1

    with pytest.raises(NoDataError):
        progress.get_report(user.id, start=START + timedelta(days=30))


def test_report_per_deck(db: Session, progress: ProgressService, user: User, pets_deck: Deck, make_deck) -> None:
    colors = make_deck([("red", "color of fire"), ("blue", "color of the sky")], name="colors")
    answer_all(db, user, [(pets_deck.words[0], True), (colors.words[0], False), (colors.words[1], True)])

    report = progress.get_report(user.id)

    assert [deck.deck_name for deck in report.decks] == ["pets", "colors"]
    assert report.decks[1].completion == 1.0
    assert report.decks[1].accuracy == 0.5


def test_report_is_read_only(db: Session, progress: ProgressService, user: User, pets_deck: Deck) -> None:
    answer_all(db, user, [(pets_deck.words[0], True)])
    before = AttemptService(db).count_attempts(user.id)

    assert progress.get_report(user.id) == progress.get_report(user.id)
    assert AttemptService(db).count_attempts(user.id) == before


def test_report_rejects_inverted_range(progress: ProgressService, user: User) -> None:
    with pytest.raises(ValueError):
        progress.get_report(user.id, start=START, end=START - timedelta(days=1))


def test_word_report(db: Session, progress: ProgressService, user: User, pets_deck: Deck) -> None:
    cat, dog = pets_deck.words[:2]
    answer_all(db, user, [(dog, False), (dog, True)])

    rows = progress.get_word_report(user.id, pets_deck.id)

    assert [row.word_id for row in rows] == [word.id for word in pets_deck.words]
    assert rows[0].attempts == 0
    assert rows[1].attempts == 2
    assert rows[1].streak == 1
