"""Tests for quiz generation and answers."""
import random

import pytest
from faker import Faker
from sqlalchemy.orm import Session

from ajstudy.exceptions import EmptyDeckError, InsufficientDeckSize
from ajstudy.models.models import Attempt, Deck, User
from ajstudy.models.quiz_models import Modality
from ajstudy.services.attempt_service import AttemptService
from ajstudy.services.quiz_service import MultipleChoiceMethod, QuizService, TrueFalseMethod
from ajstudy.services.vocabulary_service import VocabularyService

fake = Faker()


@pytest.fixture
def quiz(db: Session) -> QuizService:
    """Create a quiz service with a seeded random generator."""
    return QuizService(db, rng=random.Random(1234))


def word_id(db: Session, deck: Deck, spelling: str) -> int:
    return VocabularyService(db).get_word_by_spelling(deck.id, spelling).id


def test_methods_registered(quiz: QuizService) -> None:
    assert isinstance(quiz.get_method(Modality.MULTIPLE_CHOICE), MultipleChoiceMethod)
    assert isinstance(quiz.get_method("true_false"), TrueFalseMethod)


def test_pets_multiple_choice(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    """A 4-option question for 'cat' has one correct option and three distinct distractors."""
    question = quiz.generate_question(word_id(db, pets_deck, "cat"), Modality.MULTIPLE_CHOICE, choices=4)

    assert len(question.options) == 4
    assert question.options.count("feline pet") == 1
    assert question.options[question.correct_index] == "feline pet"
    distractors = [option for option in question.options if option != "feline pet"]
    assert sorted(distractors) == ["aquatic pet", "canine pet", "flying pet"]


def test_distractors_never_repeat_correct_definition(db: Session, make_deck) -> None:
    """Duplicate definitions in the deck never leak the correct text into distractors."""
    entries = [("big", "large"), ("huge", "large"), ("tiny", "small"), ("wee", "small"),
               ("fast", "quick"), ("slow", "not quick"), ("hot", "very warm")]
    deck = make_deck(entries)
    for seed in range(25):
        quiz = QuizService(db, rng=random.Random(seed))
        question = quiz.generate_question(word_id(db, deck, "big"), Modality.MULTIPLE_CHOICE, choices=4)
        assert question.options.count("large") == 1
        assert len(set(question.options)) == 4


def test_insufficient_deck_size(db: Session, quiz: QuizService, make_deck) -> None:
    deck = make_deck([("big", "large"), ("huge", "large"), ("tiny", "small")])
    with pytest.raises(InsufficientDeckSize) as excinfo:
        quiz.generate_question(word_id(db, deck, "big"), Modality.MULTIPLE_CHOICE, choices=4)
    assert excinfo.value.required == 4
    assert excinfo.value.available == 2


def test_fallback_to_true_false(db: Session, quiz: QuizService, make_deck) -> None:
    deck = make_deck([("big", "large"), ("tiny", "small")])
    question = quiz.generate_with_fallback(word_id(db, deck, "big"), choices=4)
    assert question.modality == Modality.TRUE_FALSE


def test_true_false_statement(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    for _ in range(20):
        question = quiz.generate_question(word_id(db, pets_deck, "dog"), Modality.TRUE_FALSE)
        assert question.statement in ("feline pet", "canine pet", "flying pet", "aquatic pet")
        assert question.is_true == (question.statement == "canine pet")


def test_true_false_single_definition_is_true(db: Session, quiz: QuizService, make_deck) -> None:
    deck = make_deck([("only", "the one word")])
    question = quiz.generate_question(word_id(db, deck, "only"), Modality.TRUE_FALSE)
    assert question.is_true is True
    assert question.correct_answer is True


def test_check_answer(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    question = quiz.generate_question(word_id(db, pets_deck, "cat"), Modality.MULTIPLE_CHOICE)
    wrong_index = (question.correct_index + 1) % len(question.options)

    assert quiz.check_answer(question, question.correct_index) is True
    assert quiz.check_answer(question, "feline pet") is True
    assert quiz.check_answer(question, wrong_index) is False


def test_check_true_false_answer(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    question = quiz.generate_question(word_id(db, pets_deck, "cat"), Modality.TRUE_FALSE)
    assert quiz.check_answer(question, question.is_true) is True
    assert quiz.check_answer(question, "yes" if question.is_true else "no") is True
    assert quiz.check_answer(question, not question.is_true) is False


def test_submit_answer_appends_one_attempt(db: Session, quiz: QuizService, user: User, pets_deck: Deck) -> None:
    """Each submission appends exactly one attempt."""
    attempts = AttemptService(db)
    question = quiz.generate_question(word_id(db, pets_deck, "cat"), Modality.MULTIPLE_CHOICE)

    first = quiz.submit_answer(user.id, question, question.correct_index)
    before = attempts.count_attempts(user.id)
    second = quiz.submit_answer(user.id, question, (question.correct_index + 1) % 4)

    assert attempts.count_attempts(user.id) == before + 1
    assert first.is_correct is True
    assert second.is_correct is False
    assert db.get(Attempt, first.id).is_correct is True
    assert attempts.get_mastery(user.id, question.word_id).streak == 0


def test_build_quiz(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    questions = quiz.build_quiz(pets_deck.id)
    assert len(questions) == 4
    assert {question.word_id for question in questions} == {word.id for word in pets_deck.words}
    assert all(question.modality == Modality.MULTIPLE_CHOICE for question in questions)

    sampled = quiz.build_quiz(pets_deck.id, size=2, modality=Modality.TRUE_FALSE)
    assert len(sampled) == 2
    assert all(question.modality == Modality.TRUE_FALSE for question in sampled)


def test_build_quiz_small_deck_falls_back(quiz: QuizService, make_deck) -> None:
    deck = make_deck([("big", "large"), ("tiny", "small")])
    questions = quiz.build_quiz(deck.id)
    assert [question.modality for question in questions] == [Modality.TRUE_FALSE] * 2


def test_build_quiz_empty_deck(db: Session, quiz: QuizService) -> None:
    deck = VocabularyService(db).create_deck("empty")
    with pytest.raises(EmptyDeckError):
        quiz.build_quiz(deck.id)


@pytest.mark.parametrize("size", [0, -1])
def test_build_quiz_rejects_bad_size(quiz: QuizService, pets_deck: Deck, size: int) -> None:
    """An explicit size below one is an error, not the default."""
    with pytest.raises(ValueError, match="at least 1"):
        quiz.build_quiz(pets_deck.id, size=size)


def test_explicit_zero_choices_is_rejected(db: Session, quiz: QuizService, pets_deck: Deck) -> None:
    with pytest.raises(ValueError, match="at least 2"):
        quiz.generate_question(word_id(db, pets_deck, "cat"), Modality.MULTIPLE_CHOICE, choices=0)


def test_build_quiz_size_one(quiz: QuizService, pets_deck: Deck) -> None:
    assert len(quiz.build_quiz(pets_deck.id, size=1)) == 1
