"""Service for turning external word lists into decks."""
import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ajstudy.exceptions import IngestionError
from ajstudy.models.quiz_models import ImportResult, WordEntry
from ajstudy.monitoring import error_count, words_imported
from ajstudy.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

# "word: definition" or "word - definition", optionally followed by "| example"
LINE_PATTERN = re.compile(r"^(?P<spelling>[^:]+?)\s*(?::|\s-\s)\s*(?P<definition>[^|]+?)\s*(?:\|\s*(?P<example>.*))?$")

SPELLING_KEYS = ("spelling", "word")


class IngestionService:
    """Service for turning external word lists into decks."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.vocabulary = VocabularyService(db)

    def import_words(
        self,
        deck_name: str,
        entries: Iterable[Union[WordEntry, tuple]],
        description: Optional[str] = None,
    ) -> ImportResult:
        """Add entries to a deck, creating the deck if needed.

        Words whose spelling is already in the deck are skipped, never
        overwritten.
        """
        deck = self.vocabulary.get_deck_by_name(deck_name)
        if deck is None:
            deck = self.vocabulary.create_deck(deck_name, description)

        result = ImportResult(deck_id=deck.id, deck_name=deck.name)
        seen = set()
        try:
            for entry in entries:
                if not isinstance(entry, WordEntry):
                    entry = WordEntry(*entry)
                key = entry.spelling.strip().lower()
                if key in seen or self.vocabulary.get_word_by_spelling(deck.id, entry.spelling):
                    logger.warning(f"Skipping {entry.spelling!r}: already in deck {deck.name!r}")
                    result.skipped.append(entry.spelling)
                    continue
                seen.add(key)
                self.vocabulary.add_word(deck.id, entry.spelling, entry.definition, entry.example, commit=False)
                result.added += 1
            self.db.commit()
        except Exception as e:
            # All entries of a list land together or not at all
            self.db.rollback()
            error_count.labels(error_type="ingestion").inc()
            logger.error(f"Import into deck {result.deck_name!r} failed, nothing added: {e}")
            raise

        words_imported.inc(result.added)
        logger.info(f"Imported {result.added} words into deck {deck.name!r}, skipped {len(result.skipped)}")
        return result

    def parse_text(self, text: str) -> List[WordEntry]:
        """Parse ``word: definition`` lines."""
        entries = []
        for number, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            match = LINE_PATTERN.match(line)
            if not match:
                raise IngestionError(f"expected 'word: definition', got {line!r}", line=number)
            entries.append(WordEntry(
                spelling=match.group("spelling").strip(),
                definition=match.group("definition").strip(),
                example=match.group("example") or None,
            ))
        return entries

    def parse_csv(self, text: str) -> List[WordEntry]:
        """Parse CSV with a header naming spelling/word and definition columns."""
        reader = csv.DictReader(io.StringIO(text))
        fields = [name.strip().lower() for name in reader.fieldnames or []]
        if "definition" not in fields or not any(key in fields for key in SPELLING_KEYS):
            raise IngestionError("CSV header must contain 'spelling' (or 'word') and 'definition'", line=1)

        entries = []
        # Data rows start on line 2
        for number, row in enumerate(reader, start=2):
            # Extra cells beyond the header land under the None key
            row = {key.strip().lower(): (value or "").strip() for key, value in row.items() if key is not None}
            if not any(row.values()):
                continue
            entries.append(self._entry_from_mapping(row, number))
        return entries

    def parse_json(self, text: str) -> List[WordEntry]:
        """Parse a JSON list of word objects."""
        try:
            raw_items = json.loads(text)
        except json.JSONDecodeError as e:
            raise IngestionError(f"invalid JSON: {e.msg}", line=e.lineno) from e
        if not isinstance(raw_items, list):
            raise IngestionError("JSON word list must be an array")

        entries = []
        for index, item in enumerate(raw_items):
            if not isinstance(item, dict):
                raise IngestionError(f"record {index} is not an object")
            item = {str(key).lower(): str(value).strip() for key, value in item.items() if value is not None}
            try:
                entries.append(self._entry_from_mapping(item, None))
            except IngestionError as e:
                raise IngestionError(f"record {index}: {e}") from e
        return entries

    def _entry_from_mapping(self, row: dict, line: Optional[int]) -> WordEntry:
        spelling = next((row[key] for key in SPELLING_KEYS if row.get(key)), "")
        definition = row.get("definition", "")
        if not spelling or not definition:
            raise IngestionError("missing spelling or definition", line=line)
        return WordEntry(spelling=spelling, definition=definition, example=row.get("example") or None)

    def import_file(self, path: Union[str, Path], deck_name: Optional[str] = None) -> ImportResult:
        """Import a .txt, .csv or .json word list."""
        path = Path(path)
        parsers = {
            ".txt": self.parse_text,
            ".csv": self.parse_csv,
            ".json": self.parse_json,
        }
        parser = parsers.get(path.suffix.lower())
        if parser is None:
            raise IngestionError(f"unsupported word list format: {path.suffix or path.name}")

        logger.info(f"Importing word list {path}")
        try:
            entries = parser(path.read_text(encoding="utf-8-sig"))
        except IngestionError as e:
            error_count.labels(error_type="ingestion").inc()
            logger.error(f"Failed to parse {path}: {e}")
            raise
        return self.import_words(deck_name or path.stem, entries)
