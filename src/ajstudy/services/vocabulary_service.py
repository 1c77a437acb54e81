"""Service for managing decks and the words in them."""
import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ajstudy.exceptions import DuplicateDeckError, DuplicateWordError
from ajstudy.models.models import Deck, Word

logger = logging.getLogger(__name__)

EDITABLE_WORD_FIELDS = ("spelling", "definition", "example")


class VocabularyService:
    """Service for managing decks and the words in them."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def create_deck(self, name: str, description: Optional[str] = None) -> Deck:
        """Create a new, empty deck."""
        name = (name or "").strip()
        if not name:
            raise ValueError("Deck name must not be empty")
        if self.get_deck_by_name(name):
            raise DuplicateDeckError(f"Deck {name!r} already exists")

        deck = Deck(name=name, description=description)
        self.db.add(deck)
        self.db.commit()
        self.db.refresh(deck)
        logger.info(f"Created deck {deck.id} {name!r}")
        return deck

    def get_deck(self, deck_id: int) -> Deck:
        """Get a deck by its ID."""
        deck = self.db.query(Deck).filter(Deck.id == deck_id).first()
        if not deck:
            raise ValueError(f"Deck {deck_id} not found")
        return deck

    def get_deck_by_name(self, name: str) -> Optional[Deck]:
        """Get a deck by its name."""
        return self.db.query(Deck).filter(Deck.name == name.strip()).first()

    def list_decks(self) -> List[Deck]:
        """Get all decks ordered by creation."""
        return self.db.query(Deck).order_by(Deck.id).all()

    def add_word(
        self,
        deck_id: int,
        spelling: str,
        definition: str,
        example: Optional[str] = None,
        commit: bool = True,
    ) -> Word:
        """Append a word to the end of a deck."""
        deck = self.get_deck(deck_id)
        spelling = (spelling or "").strip()
        definition = (definition or "").strip()
        if not spelling or not definition:
            raise ValueError("Word spelling and definition must not be empty")
        if self.get_word_by_spelling(deck.id, spelling):
            raise DuplicateWordError(f"Word {spelling!r} already in deck {deck.name!r}")

        last_position = (
            self.db.query(func.max(Word.position))
            .filter(Word.deck_id == deck.id)
            .scalar()
        )
        word = Word(
            spelling=spelling,
            definition=definition,
            example=example.strip() if example and example.strip() else None,
            deck_id=deck.id,
            position=0 if last_position is None else last_position + 1,
        )
        self.db.add(word)
        if commit:
            self.db.commit()
            self.db.refresh(word)
        else:
            self.db.flush()
        return word

    def get_word(self, word_id: int) -> Word:
        """Get a word by its ID."""
        word = self.db.query(Word).filter(Word.id == word_id).first()
        if not word:
            raise ValueError(f"Word {word_id} not found")
        return word

    def get_word_by_spelling(self, deck_id: int, spelling: str) -> Optional[Word]:
        """Get a word in a deck by its spelling, ignoring case."""
        return (
            self.db.query(Word)
            .filter(Word.deck_id == deck_id, func.lower(Word.spelling) == spelling.strip().lower())
            .first()
        )

    def get_deck_words(self, deck_id: int) -> List[Word]:
        """Get the words of a deck in deck order."""
        self.get_deck(deck_id)
        return (
            self.db.query(Word)
            .filter(Word.deck_id == deck_id)
            .order_by(Word.position)
            .all()
        )

    def get_deck_word_count(self, deck_id: int) -> int:
        """Get the count of words in a deck."""
        return self.db.query(Word).filter(Word.deck_id == deck_id).count()

    def distinct_definitions(self, deck_id: int) -> List[str]:
        """Get the distinct definition texts of a deck, in deck order."""
        seen = set()
        definitions = []
        for word in self.get_deck_words(deck_id):
            if word.definition not in seen:
                seen.add(word.definition)
                definitions.append(word.definition)
        return definitions

    def update_word(self, word_id: int, **kwargs) -> Word:
        """Edit a word's spelling, definition or example."""
        word = self.get_word(word_id)
        unknown = set(kwargs) - set(EDITABLE_WORD_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit word fields: {', '.join(sorted(unknown))}")

        if "spelling" in kwargs:
            spelling = (kwargs["spelling"] or "").strip()
            if not spelling:
                raise ValueError("Word spelling must not be empty")
            existing = self.get_word_by_spelling(word.deck_id, spelling)
            if existing and existing.id != word.id:
                raise DuplicateWordError(f"Word {spelling!r} already in deck {word.deck_id}")
            word.spelling = spelling
        if "definition" in kwargs:
            definition = (kwargs["definition"] or "").strip()
            if not definition:
                raise ValueError("Word definition must not be empty")
            word.definition = definition
        if "example" in kwargs:
            word.example = kwargs["example"] or None

        self.db.commit()
        self.db.refresh(word)
        logger.info(f"Updated word {word.id}: {', '.join(sorted(kwargs))}")
        return word

    def search_words(
        self,
        query: str,
        deck_id: Optional[int] = None,
        limit: int = 10,
    ) -> List[Word]:
        """Search for words by spelling or definition."""
        search_query = (
            self.db.query(Word)
            .filter(
                or_(
                    Word.spelling.ilike(f"%{query}%"),
                    Word.definition.ilike(f"%{query}%"),
                )
            )
        )

        if deck_id is not None:
            search_query = search_query.filter(Word.deck_id == deck_id)

        return search_query.order_by(Word.deck_id, Word.position).limit(limit).all()
