"""Quiz question generation and answer recording."""
import logging
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Union, final

from sqlalchemy.orm import Session

from ajstudy.config import settings
from ajstudy.exceptions import EmptyDeckError, InsufficientDeckSize
from ajstudy.models.models import Attempt, Word
from ajstudy.models.quiz_models import Modality, Question
from ajstudy.monitoring import error_count, questions_generated, quiz_fallbacks
from ajstudy.services.attempt_service import AttemptService
from ajstudy.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


def get_all_subclasses(cls):
    """Get all subclasses of a class."""
    all_subclasses = []
    for subclass in cls.__subclasses__():
        all_subclasses.append(subclass)
        all_subclasses.extend(get_all_subclasses(subclass))
    return all_subclasses


class BaseQuestionMethod(ABC):
    """Base class for all question methods."""

    modality: Modality

    @final
    def __init__(self, vocabulary: VocabularyService, rng: random.Random):
        self.vocabulary = vocabulary
        self.rng = rng

    @abstractmethod
    def create_question(self, word: Word, choices: int) -> Question:
        """Build a question for the word. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def is_correct(self, question: Question, answer) -> bool:
        """Check an answer to a question built by this method."""
        raise NotImplementedError("Subclasses must implement this method")

    @final
    def distractors(self, word: Word) -> List[str]:
        """Distinct definitions of the word's deck other than its own."""
        return [
            definition for definition in self.vocabulary.distinct_definitions(word.deck_id)
            if definition != word.definition
        ]


class MultipleChoiceMethod(BaseQuestionMethod):
    """Pick the word's definition among distractors from the same deck."""
    modality = Modality.MULTIPLE_CHOICE

    def create_question(self, word: Word, choices: int) -> Question:
        if choices < 2:
            raise ValueError("A multiple-choice question needs at least 2 options")
        distractors = self.distractors(word)
        available = len(distractors) + 1
        if available < choices:
            error_count.labels(error_type="insufficient_deck_size").inc()
            logger.warning(f"Deck {word.deck_id} has {available} distinct definitions, {choices} needed")
            raise InsufficientDeckSize(word.deck_id, choices, available)

        options = [word.definition] + self.rng.sample(distractors, choices - 1)
        self.rng.shuffle(options)
        return Question(
            word_id=word.id,
            deck_id=word.deck_id,
            modality=self.modality,
            prompt=f"What does '{word.spelling}' mean?",
            options=options,
            correct_index=options.index(word.definition),
        )

    def is_correct(self, question: Question, answer) -> bool:
        if isinstance(answer, bool):
            raise TypeError("Multiple-choice answers are an option index or option text")
        if isinstance(answer, int):
            return answer == question.correct_index
        return str(answer).strip() == question.options[question.correct_index]


class TrueFalseMethod(BaseQuestionMethod):
    """Say whether a definition belongs to the word."""
    modality = Modality.TRUE_FALSE

    def create_question(self, word: Word, choices: int) -> Question:
        distractors = self.distractors(word)
        is_true = not distractors or self.rng.random() < settings.quiz.true_false_true_ratio
        statement = word.definition if is_true else self.rng.choice(distractors)
        return Question(
            word_id=word.id,
            deck_id=word.deck_id,
            modality=self.modality,
            prompt=f"True or false: '{word.spelling}' means '{statement}'.",
            statement=statement,
            is_true=is_true,
        )

    def is_correct(self, question: Question, answer) -> bool:
        if isinstance(answer, str):
            answer = answer.strip().lower() in ("t", "true", "y", "yes")
        return bool(answer) == question.is_true


class QuizService:
    """Service for generating questions and recording answers."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.rng = rng or random.Random()
        self.vocabulary = VocabularyService(db)
        self.attempts = AttemptService(db)
        self.methods: Dict[Modality, BaseQuestionMethod] = {
            method_class.modality: method_class(self.vocabulary, self.rng)
            for method_class in get_all_subclasses(BaseQuestionMethod)
        }

    def get_method(self, modality: Union[Modality, str]) -> BaseQuestionMethod:
        """Get the question method for a modality."""
        return self.methods[Modality(modality)]

    def generate_question(
        self,
        word_id: int,
        modality: Union[Modality, str] = Modality.MULTIPLE_CHOICE,
        choices: Optional[int] = None,
    ) -> Question:
        """Generate a question for a word."""
        word = self.vocabulary.get_word(word_id)
        method = self.get_method(modality)
        if choices is None:
            choices = settings.quiz.choices
        question = method.create_question(word, choices)
        questions_generated.labels(modality=method.modality.value).inc()
        logger.debug(f"Generated {method.modality.value} question for word {word.id}")
        return question

    def generate_with_fallback(self, word_id: int, choices: Optional[int] = None) -> Question:
        """Generate a multiple-choice question, or true/false if the deck is too small."""
        try:
            return self.generate_question(word_id, Modality.MULTIPLE_CHOICE, choices)
        except InsufficientDeckSize as e:
            quiz_fallbacks.inc()
            logger.info(f"Falling back to true/false for word {word_id}: {e}")
            return self.generate_question(word_id, Modality.TRUE_FALSE)

    def build_quiz(
        self,
        deck_id: int,
        size: Optional[int] = None,
        modality: Union[Modality, str] = Modality.MULTIPLE_CHOICE,
        choices: Optional[int] = None,
    ) -> List[Question]:
        """Generate one question per word of a deck, sampling words if needed."""
        if size is None:
            size = settings.quiz.size
        if size < 1:
            raise ValueError(f"Quiz size must be at least 1, got {size}")
        words = self.vocabulary.get_deck_words(deck_id)
        if not words:
            raise EmptyDeckError(f"Deck {deck_id} has no words")
        if size < len(words):
            words = self.rng.sample(words, size)

        modality = Modality(modality)
        questions = []
        for word in words:
            if modality == Modality.MULTIPLE_CHOICE:
                questions.append(self.generate_with_fallback(word.id, choices))
            else:
                questions.append(self.generate_question(word.id, modality))
        logger.info(f"Built quiz with {len(questions)} questions for deck {deck_id}")
        return questions

    def check_answer(self, question: Question, answer) -> bool:
        """Check an answer without recording it."""
        return self.get_method(question.modality).is_correct(question, answer)

    def submit_answer(self, user_id: int, question: Question, answer) -> Attempt:
        """Check an answer and append exactly one attempt for it."""
        is_correct = self.check_answer(question, answer)
        return self.attempts.record_attempt(user_id, question.word_id, is_correct, question.modality)
