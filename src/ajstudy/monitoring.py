"""Monitoring configuration for the study engine."""
from prometheus_client import Counter, start_http_server

# Attempt log metrics
attempts_recorded = Counter(
    "ajstudy_attempts_recorded_total",
    "Total number of answers appended to the attempt log",
    ["modality", "correct"],
)

# Quiz metrics
questions_generated = Counter(
    "ajstudy_questions_generated_total",
    "Total number of quiz questions generated",
    ["modality"],
)

quiz_fallbacks = Counter(
    "ajstudy_quiz_fallbacks_total",
    "Multiple-choice questions replaced by true/false for small decks",
)

# Study metrics
study_sessions = Counter(
    "ajstudy_study_sessions_total",
    "Total number of study sessions started",
)

# Ingestion metrics
words_imported = Counter(
    "ajstudy_words_imported_total",
    "Total number of words added to decks",
)

# Progress metrics
reports_generated = Counter(
    "ajstudy_reports_generated_total",
    "Total number of progress reports generated",
)

# Error metrics
error_count = Counter(
    "ajstudy_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
