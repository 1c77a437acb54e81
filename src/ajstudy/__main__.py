"""Command line entry point for the study engine."""
import argparse
import logging
import sys
from datetime import UTC, datetime, time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ajstudy import __version__
from ajstudy.config import LOG_LEVELS, settings
from ajstudy.exceptions import NoDataError, StudyError
from ajstudy.logging_config import setup_logging
from ajstudy.models.base import SessionLocal, init_db
from ajstudy.models.quiz_models import Modality, Question
from ajstudy.monitoring import error_count, start_monitoring
from ajstudy.services.ingestion_service import IngestionService
from ajstudy.services.progress_service import ProgressService
from ajstudy.services.quiz_service import QuizService
from ajstudy.services.study_service import StudyService
from ajstudy.services.user_service import UserService
from ajstudy.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


def parse_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse YYYY-MM-DD as a UTC datetime."""
    try:
        day = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=UTC)


def cmd_init_db(db: Session, args: argparse.Namespace) -> int:
    init_db()
    print("Database initialized")
    return 0


def cmd_import(db: Session, args: argparse.Namespace) -> int:
    result = IngestionService(db).import_file(args.file, args.deck)
    print(f"Deck {result.deck_name!r} (id {result.deck_id}): added {result.added} words")
    if result.skipped:
        print(f"Skipped existing words: {', '.join(result.skipped)}")
    return 0


def cmd_decks(db: Session, args: argparse.Namespace) -> int:
    vocabulary = VocabularyService(db)
    for deck in vocabulary.list_decks():
        print(f"{deck.id:>4}  {deck.name}  ({vocabulary.get_deck_word_count(deck.id)} words)")
    return 0


def cmd_add_user(db: Session, args: argparse.Namespace) -> int:
    user = UserService(db).create_user(args.name)
    print(f"Created user {user.id} {user.display_name!r}")
    return 0


def cmd_study(db: Session, args: argparse.Namespace) -> int:
    session = StudyService(db).start_session(args.user, args.deck, args.passes)
    for word in session:
        print(f"[pass {session.current_pass}] {word.spelling}: {word.definition}")
    return 0


def ask(question: Question, read: Callable[[str], str]) -> object:
    """Show a question on the terminal and read the answer."""
    print(question.prompt)
    if question.modality == Modality.MULTIPLE_CHOICE:
        for number, option in enumerate(question.options, start=1):
            print(f"  {number}. {option}")
        while True:
            reply = read("Your answer (number): ").strip()
            if reply.isdigit() and 1 <= int(reply) <= len(question.options):
                return int(reply) - 1
            print("Please type one of the option numbers.")
    return read("True or false? ")


def cmd_quiz(db: Session, args: argparse.Namespace, read: Callable[[str], str] = input) -> int:
    quiz = QuizService(db)
    questions = quiz.build_quiz(args.deck, args.size, Modality(args.modality))
    score = 0
    for question in questions:
        attempt = quiz.submit_answer(args.user, question, ask(question, read))
        if attempt.is_correct:
            score += 1
            print("Correct!\n")
        else:
            print(f"Not quite: {question.correct_answer}\n")
    print(f"Score: {score}/{len(questions)}")
    return 0


def cmd_report(db: Session, args: argparse.Namespace) -> int:
    try:
        report = ProgressService(db).get_report(args.user, args.since, args.until)
    except NoDataError:
        print("Nothing to report yet. Try a quiz first!")
        return 0
    print(f"Attempts: {report.total_attempts}  correct: {report.correct_attempts}  accuracy: {report.accuracy:.0%}")
    print(f"Current streak: {report.current_streak}  best streak: {report.best_streak}")
    for deck in report.decks:
        print(
            f"  {deck.deck_name}: {deck.words_attempted}/{deck.words_total} words tried "
            f"({deck.completion:.0%}), {deck.words_mastered} mastered, accuracy {deck.accuracy:.0%}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ajstudy", description="Vocabulary study engine")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None, help="override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="create database tables").set_defaults(handler=cmd_init_db)

    import_parser = subparsers.add_parser("import", help="import a .txt, .csv or .json word list")
    import_parser.add_argument("file")
    import_parser.add_argument("--deck", help="deck name (defaults to the file name)")
    import_parser.set_defaults(handler=cmd_import)

    subparsers.add_parser("decks", help="list decks").set_defaults(handler=cmd_decks)

    user_parser = subparsers.add_parser("add-user", help="create a user")
    user_parser.add_argument("name")
    user_parser.set_defaults(handler=cmd_add_user)

    study_parser = subparsers.add_parser("study", help="print the study order for a deck")
    study_parser.add_argument("--user", type=int, required=True)
    study_parser.add_argument("--deck", type=int, required=True)
    study_parser.add_argument("--passes", type=int, default=None)
    study_parser.set_defaults(handler=cmd_study)

    quiz_parser = subparsers.add_parser("quiz", help="take a quiz on a deck")
    quiz_parser.add_argument("--user", type=int, required=True)
    quiz_parser.add_argument("--deck", type=int, required=True)
    quiz_parser.add_argument("--size", type=int, default=None)
    quiz_parser.add_argument(
        "--modality",
        choices=[modality.value for modality in Modality],
        default=Modality.MULTIPLE_CHOICE.value,
    )
    quiz_parser.set_defaults(handler=cmd_quiz)

    report_parser = subparsers.add_parser("report", help="show a progress report")
    report_parser.add_argument("--user", type=int, required=True)
    report_parser.add_argument("--since", type=parse_date, default=None)
    report_parser.add_argument("--until", type=lambda value: parse_date(value, end_of_day=True), default=None)
    report_parser.set_defaults(handler=cmd_report)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(f"Starting ajstudy {__version__} ...", args.log_level)
    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    init_db()
    db = SessionLocal()
    try:
        return args.handler(db, args)
    except (StudyError, ValueError) as e:
        error_count.labels(error_type=type(e).__name__).inc()
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
